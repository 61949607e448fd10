from typing import FrozenSet

from hookgram.cache.ttl import TTLCache
from hookgram.logger import get_logger
from hookgram.settings import ADMIN_CACHE_TTL_MINUTES
from hookgram.telegram.client import TelegramClient, TelegramError


logger = get_logger("hookgram.telegram.admins")

ADMIN_STATUSES = ("administrator", "creator")


async def is_admin(
    client: TelegramClient,
    admin_cache: TTLCache[int, FrozenSet[int]],
    chat_id: int,
    user_id: int,
    ttl: float = ADMIN_CACHE_TTL_MINUTES * 60,
) -> bool:
    """
    Check chat-admin rights, trusting the cached admin list until it expires.

    On a miss the list is refetched. If that fails, fall back to the
    user's own membership status without caching it.
    """
    admins, found = admin_cache.get(chat_id)
    if found:
        return user_id in admins

    try:
        admin_ids = frozenset(await client.get_chat_administrators(chat_id))
    except TelegramError:
        logger.warning("Could not fetch admins for chat %s", chat_id)
        try:
            status = await client.get_chat_member_status(chat_id, user_id)
        except TelegramError:
            logger.exception("Could not fetch member %s of chat %s", user_id, chat_id)
            return False
        return status in ADMIN_STATUSES

    admin_cache.set(chat_id, admin_ids, ttl)
    return user_id in admin_ids
