from __future__ import annotations

from aiohttp import web

from surveyhub.database.repo.votes_repo import VoteFilters
from surveyhub.services.errors import ValidationError
from surveyhub.services.votes import VoteInput
from surveyhub.web.auth import require_role
from surveyhub.web.keys import VOTES
from surveyhub.web.middleware import API_PREFIX, client_address, json_response
from surveyhub.web.params import query_datetime, query_int, require_query_int

routes = web.RouteTableDef()


@routes.post(f"{API_PREFIX}/votes")
async def submit_vote(request: web.Request) -> web.Response:
    """Public: one answer to one question of an active survey."""
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e

    inp = VoteInput.from_payload(
        body,
        session_id=request.headers.get("X-Session-Id"),
        ip_address=client_address(request),
        user_agent=request.headers.get("User-Agent"),
    )
    receipt = await request.app[VOTES].submit(request["session"], inp)

    return json_response(
        {
            "message": "Vote submitted successfully",
            "vote": {
                "id": receipt.id,
                "question_id": receipt.question_id,
                "voted_at": receipt.voted_at,
            },
        },
        status=201,
    )


@routes.get(f"{API_PREFIX}/votes")
@require_role()
async def list_votes(request: web.Request) -> web.Response:
    survey_id = require_query_int(request, "survey_id")
    filters = VoteFilters(
        limit=query_int(request, "limit", default=100, minimum=1),
        offset=query_int(request, "offset", default=0, minimum=0),
        question_id=query_int(request, "question_id"),
        search=(request.query.get("search") or "").strip() or None,
        date_from=query_datetime(request, "date_from"),
        date_to=query_datetime(request, "date_to", end_of_day=True),
    )
    result = await request.app[VOTES].list_votes(request["session"], survey_id, filters)
    return json_response(result)
