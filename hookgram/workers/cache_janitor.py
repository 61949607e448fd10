import asyncio

from hookgram.cache.state import CacheState
from hookgram.logger import get_logger
from hookgram.settings import CACHE_CLEANUP_INTERVAL_SECONDS


logger = get_logger("hookgram.workers.janitor")


def sweep(caches: CacheState) -> int:
    removed = caches.cleanup()
    total = sum(removed.values())
    if total:
        logger.info("Evicted %s expired cache entries: %s", total, removed)
    return total


async def cleanup_loop(caches: CacheState, interval: float = CACHE_CLEANUP_INTERVAL_SECONDS):
    """Periodically drop expired entries nobody read since they expired."""
    while True:
        await asyncio.sleep(interval)
        try:
            sweep(caches)
        except asyncio.CancelledError:
            logger.info("Cache janitor cancelled")
            raise
        except Exception:
            logger.exception("Cache janitor error")
