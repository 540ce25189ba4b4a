from __future__ import annotations

from datetime import datetime

from aiohttp import web

from surveyhub.services.errors import ValidationError
from surveyhub.utils.dt import parse_datetime


def query_int(request: web.Request, name: str, *, default: int | None = None, minimum: int | None = None) -> int | None:
    raw = (request.query.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer") from e
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return value


def require_query_int(request: web.Request, name: str) -> int:
    value = query_int(request, name)
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


def query_datetime(request: web.Request, name: str, *, end_of_day: bool = False) -> datetime | None:
    try:
        return parse_datetime(request.query.get(name), end_of_day=end_of_day)
    except ValueError as e:
        raise ValidationError(f"{name} must be an ISO date or datetime") from e
