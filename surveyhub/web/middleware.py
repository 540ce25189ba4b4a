# surveyhub/web/middleware.py
from __future__ import annotations

import logging
import time
import traceback
from typing import Any, Awaitable, Callable

from aiohttp import web

from surveyhub.services.errors import AppError
from surveyhub.utils import jsonutil
from surveyhub.utils.ratelimit import RateDecision
from surveyhub.web.keys import API_LIMITER, DB, SETTINGS, VOTE_LIMITER

log = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def json_response(data: Any, *, status: int = 200, headers: dict[str, str] | None = None) -> web.Response:
    return web.json_response(data, status=status, headers=headers, dumps=jsonutil.dumps)


def client_address(request: web.Request) -> str:
    return request.remote or "unknown"


def _is_api(request: web.Request) -> bool:
    return request.path.startswith("/api/")


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Translates domain errors into status codes.
    Every /api/* error is JSON; unexpected failures become a generic 500
    (with the stack trace in development only).
    """
    try:
        return await handler(request)
    except AppError as e:
        return json_response({"error": e.message}, status=e.status)
    except web.HTTPException as e:
        if _is_api(request) and e.status >= 400:
            return json_response({"error": (e.reason or "error").lower(), "path": request.path}, status=e.status)
        raise
    except Exception:
        log.exception("Unhandled error on %s %s", request.method, request.path)
        body: dict[str, Any] = {"error": "Internal server error"}
        if request.app[SETTINGS].is_dev:
            body["stack"] = traceback.format_exc()
        return json_response(body, status=500)


def _limit_headers(decision: RateDecision, now: float) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(decision.retry_after(now)),
    }


@web.middleware
async def rate_limit_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Fixed-window admission control per source address: votes first, then the whole API."""
    if not _is_api(request):
        return await handler(request)

    now = time.time()
    addr = client_address(request)

    checks = []
    if request.path.startswith(f"{API_PREFIX}/votes"):
        checks.append((request.app[VOTE_LIMITER], "Too many votes from this IP, please try again later."))
    checks.append((request.app[API_LIMITER], "Too many requests from this IP, please try again later."))

    decision: RateDecision | None = None
    for limiter, message in checks:
        decision = limiter.hit(addr, now)
        if not decision.allowed:
            log.warning("Rate limited %s on %s", addr, request.path)
            headers = _limit_headers(decision, now)
            headers["Retry-After"] = str(decision.retry_after(now))
            return json_response({"error": message}, status=429, headers=headers)

    resp = await handler(request)
    if decision is not None and not resp.prepared:
        resp.headers.update(_limit_headers(decision, now))
    return resp


@web.middleware
async def db_session_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Creates a DB session per API request and stores it as request["session"].
    Commits on success and rolls back on error.
    """
    if not _is_api(request):
        return await handler(request)

    async with request.app[DB].SessionLocal() as session:
        request["session"] = session
        try:
            result = await handler(request)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise
