import redis
from typing import Optional

from hookgram.logger import get_logger
from hookgram.settings import REDIS_URL


logger = get_logger("hookgram.redis")

REDIS_SOCKET_TIMEOUT_SECONDS = 5

_redis: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """
    Return the shared Redis client, creating it on first use.

    Store helpers catch the errors this client raises; see hookgram.db.store.
    """
    global _redis

    if _redis is None:
        try:
            _redis = redis.Redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
                health_check_interval=30,
            )
        except redis.RedisError as exc:
            logger.exception("Failed to create Redis client")
            raise exc

    return _redis


def set_redis(client: Optional[redis.Redis]) -> None:
    """Replace the shared client (tests, alternative deployments)."""
    global _redis
    _redis = client
