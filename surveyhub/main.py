# surveyhub/main.py
import asyncio
import contextlib
import logging

from aiohttp import web

from surveyhub.cache import Cache
from surveyhub.config import Settings
from surveyhub.database import Database
from surveyhub.realtime import BackgroundTasks, BroadcastHub
from surveyhub.scheduler import setup_scheduler
from surveyhub.utils.ratelimit import FixedWindowLimiter
from surveyhub.web.app import create_app


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy / driver / access logs: WARNING+
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "asyncpg",
        "aiosqlite",
        "aiohttp.access",
        "apscheduler",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("surveyhub")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    cache = Cache.from_url(settings.redis_url)
    if cache.enabled:
        if await cache.ping():
            log.info("Redis connected")
        else:
            log.warning("Redis unreachable, continuing with cache misses")

    tasks = BackgroundTasks()
    hub = BroadcastHub(db, cache, tasks)

    vote_limiter = FixedWindowLimiter(settings.vote_rate_limit, settings.rate_limit_window_seconds)
    api_limiter = FixedWindowLimiter(settings.api_rate_limit, settings.rate_limit_window_seconds)

    app = create_app(
        settings,
        db,
        cache,
        hub,
        vote_limiter=vote_limiter,
        api_limiter=api_limiter,
    )

    scheduler = setup_scheduler(db=db, cache=cache, settings=settings, limiters=(vote_limiter, api_limiter))
    log.info("Scheduler started")

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.port)
    await site.start()
    log.info("Server is running on %s:%s (%s)", settings.host, settings.port, settings.environment)

    try:
        await asyncio.Event().wait()
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Server crashed")
        raise
    finally:
        # Stop accepting requests first
        try:
            await runner.cleanup()
        except Exception:
            log.exception("Failed to stop HTTP server")

        try:
            scheduler.shutdown(wait=False)
        except Exception:
            log.exception("Failed to shutdown scheduler")

        # Pending broadcasts
        try:
            await tasks.close()
        except Exception:
            log.exception("Failed to cancel background tasks")

        try:
            await cache.close()
        except Exception:
            log.exception("Failed to close cache")

        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
