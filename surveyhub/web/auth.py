from __future__ import annotations

import functools

from aiohttp import web

from surveyhub.services.auth import ROLES
from surveyhub.services.errors import RoleForbidden
from surveyhub.web.keys import AUTH


def require_role(*roles: str):
    """
    Handler decorator: bearer token required, role must be one of `roles`
    (any known role when none given). Stores the caller as request["user"].
    """
    allowed = frozenset(roles or ROLES)

    def deco(handler):
        @functools.wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            user = request.app[AUTH].authenticate_header(request.headers.get("Authorization"))
            if user.role not in allowed:
                raise RoleForbidden("Insufficient permissions")
            request["user"] = user
            return await handler(request)

        return wrapper

    return deco
