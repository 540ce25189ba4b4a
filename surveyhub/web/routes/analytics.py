from __future__ import annotations

from aiohttp import web

from surveyhub.web.auth import require_role
from surveyhub.web.keys import ANALYTICS
from surveyhub.web.middleware import API_PREFIX, json_response
from surveyhub.web.params import query_datetime, query_int, require_query_int

routes = web.RouteTableDef()

PREFIX = f"{API_PREFIX}/admin/analytics"


@routes.get(f"{PREFIX}/realtime")
@require_role()
async def realtime(request: web.Request) -> web.Response:
    survey_id = require_query_int(request, "survey_id")
    return json_response(await request.app[ANALYTICS].realtime(request["session"], survey_id))


@routes.get(f"{PREFIX}/aggregate")
@require_role()
async def aggregate(request: web.Request) -> web.Response:
    survey_id = require_query_int(request, "survey_id")
    result = await request.app[ANALYTICS].aggregate(
        request["session"],
        survey_id,
        question_id=query_int(request, "question_id"),
        start=query_datetime(request, "start_date"),
        end=query_datetime(request, "end_date", end_of_day=True),
    )
    return json_response(result)


@routes.get(f"{PREFIX}/crosstab")
@require_role()
async def crosstab(request: web.Request) -> web.Response:
    q1 = require_query_int(request, "question_id1")
    q2 = require_query_int(request, "question_id2")
    return json_response(await request.app[ANALYTICS].crosstab(request["session"], q1, q2))


@routes.get(f"{PREFIX}/heatmap")
@require_role()
async def heatmap(request: web.Request) -> web.Response:
    survey_id = require_query_int(request, "survey_id")
    question_id = require_query_int(request, "question_id")
    return json_response(await request.app[ANALYTICS].heatmap(request["session"], survey_id, question_id))
