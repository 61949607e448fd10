from typing import List, Optional

from hookgram.db.keys import chat_key, chat_links_key, user_key
from hookgram.db.models import Chat, RepoLink, User
from hookgram.db.redis_client import get_redis
from hookgram.logger import get_logger


logger = get_logger("hookgram.db.store")


# =========================================================
# Utility
# =========================================================

def _as_str(x):
    return x.decode() if isinstance(x, bytes) else x


def _as_int(x, default: int = 0) -> int:
    try:
        return int(_as_str(x))
    except (TypeError, ValueError):
        return default


# =========================================================
# Users
# =========================================================

def get_user(telegram_id: int) -> Optional[User]:
    r = get_redis()
    try:
        data = r.hgetall(user_key(telegram_id))
    except Exception:
        logger.exception("Failed to load user: %s", telegram_id)
        return None

    if not data:
        return None

    data = {_as_str(k): _as_str(v) for k, v in data.items()}
    scopes = data.get("scopes") or ""

    return User(
        telegram_id=telegram_id,
        github_user_id=_as_int(data.get("github_user_id")),
        github_username=data.get("github_username", ""),
        encrypted_token=data.get("encrypted_token", ""),
        scopes=[s for s in scopes.split(",") if s],
    )


def upsert_user(user: User):
    r = get_redis()
    try:
        r.hset(user_key(user.telegram_id), mapping={
            "github_user_id": user.github_user_id,
            "github_username": user.github_username,
            "encrypted_token": user.encrypted_token,
            "scopes": ",".join(user.scopes),
        })
    except Exception:
        logger.exception("Failed to upsert user: %s", user.telegram_id)
        raise


def clear_user_token(telegram_id: int):
    r = get_redis()
    try:
        r.hset(user_key(telegram_id), "encrypted_token", "")
    except Exception:
        logger.exception("Failed to clear token for user: %s", telegram_id)
        raise


# =========================================================
# Chats
# =========================================================

def upsert_chat(chat_id: int, chat_type: str, title: str):
    r = get_redis()
    try:
        r.hset(chat_key(chat_id), mapping={
            "chat_type": chat_type,
            "title": title,
        })
    except Exception:
        logger.exception("Failed to upsert chat: %s", chat_id)
        raise


def get_chat(chat_id: int) -> Optional[Chat]:
    r = get_redis()
    try:
        data = r.hgetall(chat_key(chat_id))
    except Exception:
        logger.exception("Failed to load chat: %s", chat_id)
        return None

    if not data:
        return None

    data = {_as_str(k): _as_str(v) for k, v in data.items()}
    return Chat(
        chat_id=chat_id,
        chat_type=data.get("chat_type", ""),
        title=data.get("title", ""),
        links=get_chat_links(chat_id),
    )


# =========================================================
# Repository links
# =========================================================

def add_repo_link(chat_id: int, link: RepoLink):
    r = get_redis()
    try:
        r.hset(chat_links_key(chat_id), link.repo_full_name, link.webhook_id)
    except Exception:
        logger.exception("Failed to add repo link: %s -> %s", chat_id, link.repo_full_name)
        raise


def remove_repo_link(chat_id: int, repo_full_name: str) -> bool:
    """Returns False when the chat had no such link."""
    r = get_redis()
    try:
        return bool(r.hdel(chat_links_key(chat_id), repo_full_name))
    except Exception:
        logger.exception("Failed to remove repo link: %s -> %s", chat_id, repo_full_name)
        raise


def get_chat_links(chat_id: int) -> List[RepoLink]:
    r = get_redis()
    try:
        data = r.hgetall(chat_links_key(chat_id))
    except Exception:
        logger.exception("Failed to list repo links for chat: %s", chat_id)
        return []

    links = [
        RepoLink(repo_full_name=_as_str(name), webhook_id=_as_int(hook_id))
        for name, hook_id in data.items()
    ]
    return sorted(links, key=lambda l: l.repo_full_name.lower())


def get_repo_link(chat_id: int, repo_full_name: str) -> Optional[RepoLink]:
    r = get_redis()
    try:
        hook_id = r.hget(chat_links_key(chat_id), repo_full_name)
    except Exception:
        logger.exception("Failed to load repo link: %s -> %s", chat_id, repo_full_name)
        return None

    if hook_id is None:
        return None

    return RepoLink(repo_full_name=repo_full_name, webhook_id=_as_int(hook_id))


def update_repo_link_name(chat_id: int, webhook_id: int, new_full_name: str) -> bool:
    """
    Re-key the link that owns `webhook_id` after a repository rename.

    Returns False when no link in the chat uses that webhook.
    """
    r = get_redis()
    key = chat_links_key(chat_id)

    try:
        for name, hook_id in r.hgetall(key).items():
            if _as_int(hook_id) != webhook_id:
                continue

            old_name = _as_str(name)
            if old_name == new_full_name:
                return True

            pipe = r.pipeline()
            pipe.hdel(key, old_name)
            pipe.hset(key, new_full_name, webhook_id)
            pipe.execute()
            return True
    except Exception:
        logger.exception(
            "Failed to rename repo link: chat=%s hook=%s -> %s",
            chat_id,
            webhook_id,
            new_full_name,
        )
        raise

    return False
