from __future__ import annotations

from aiohttp import web

from surveyhub.web.keys import SURVEYS
from surveyhub.web.middleware import API_PREFIX, json_response

routes = web.RouteTableDef()


@routes.get(f"{API_PREFIX}/surveys/token/{{token}}")
async def survey_by_token(request: web.Request) -> web.Response:
    """Public survey page payload (questions + options), cached per token."""
    token = request.match_info["token"].strip()
    return json_response(await request.app[SURVEYS].public_payload(request["session"], token))
