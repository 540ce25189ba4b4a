from __future__ import annotations

from aiohttp import web

from surveyhub.utils.dt import utcnow
from surveyhub.web.keys import CACHE, SETTINGS
from surveyhub.web.middleware import json_response

routes = web.RouteTableDef()


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS]
    return json_response(
        {
            "status": "ok",
            "timestamp": utcnow(),
            "database": bool(settings.database_url),
            "cache": request.app[CACHE].enabled,
        }
    )
