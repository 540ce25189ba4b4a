from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Iterable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from surveyhub.cache import Cache, survey_key
from surveyhub.config.settings import Settings
from surveyhub.database.repo import surveys_repo
from surveyhub.database.session import Database
from surveyhub.utils.dt import utcnow
from surveyhub.utils.ratelimit import FixedWindowLimiter

log = logging.getLogger(__name__)


# -------------------------------------------------
# Survey expiry
# -------------------------------------------------

async def expire_survey_payloads(db: Database, cache: Cache, *, lookback_seconds: int) -> int:
    """
    Drops cached public payloads of surveys whose end_date passed within the
    last `lookback_seconds`. A payload is cached for at most the survey ttl,
    so older ends have nothing left to drop. Survey status is left alone;
    Survey.is_active already refuses votes outside the window.
    """
    now = utcnow()
    async with db.session() as session:
        ended = await surveys_repo.list_ended_between(session, now - timedelta(seconds=lookback_seconds), now)

    if not ended:
        return 0

    await cache.delete(*(survey_key(s.token) for s in ended))
    log.debug("Dropped cached payloads of %s ended survey(s)", len(ended))
    return len(ended)


# -------------------------------------------------
# Rate limit counters
# -------------------------------------------------

async def sweep_rate_limits(limiters: Iterable[FixedWindowLimiter]) -> int:
    now = time.time()
    dropped = sum(limiter.sweep(now) for limiter in limiters)
    if dropped:
        log.debug("Dropped %s expired rate limit window(s)", dropped)
    return dropped


# -------------------------------------------------
# Scheduler setup
# -------------------------------------------------

def build_scheduler(
    db: Database,
    cache: Cache,
    settings: Settings,
    limiters: Iterable[FixedWindowLimiter] = (),
) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    interval = settings.survey_expiry_interval_seconds
    scheduler.add_job(
        expire_survey_payloads,
        trigger=IntervalTrigger(seconds=interval, timezone="UTC"),
        kwargs={"db": db, "cache": cache, "lookback_seconds": settings.survey_cache_ttl + interval},
        id="expire_survey_payloads",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=60,
    )

    scheduler.add_job(
        sweep_rate_limits,
        trigger=IntervalTrigger(minutes=1, timezone="UTC"),
        kwargs={"limiters": list(limiters)},
        id="sweep_rate_limits",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=60,
    )

    return scheduler
