from __future__ import annotations

from typing import Iterable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from surveyhub.cache import Cache
from surveyhub.config.settings import Settings
from surveyhub.database.session import Database
from surveyhub.scheduler.jobs import build_scheduler
from surveyhub.utils.ratelimit import FixedWindowLimiter


def setup_scheduler(
    db: Database,
    cache: Cache,
    settings: Settings,
    limiters: Iterable[FixedWindowLimiter] = (),
) -> AsyncIOScheduler:
    scheduler = build_scheduler(db=db, cache=cache, settings=settings, limiters=limiters)
    scheduler.start()
    return scheduler
