"""
Acting on GitHub as the Telegram user who pressed a button or sent a command.
"""
from typing import Optional, Tuple

from hookgram.db import store
from hookgram.github.api import GitHubAPIError, GitHubClient
from hookgram.github.formatter import escape
from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.settings import AUTH_FAILED_MESSAGE
from hookgram.telegram.admins import is_admin
from hookgram.telegram.client import TelegramError
from hookgram.telegram.keyboards import Keyboard


logger = get_logger("hookgram.commands.session")

NOT_CONNECTED_MESSAGE = "You need to /connect your GitHub account first."
ADMIN_ONLY_MESSAGE = "Only chat admins can do this."


def github_for_user(
    services: Services,
    telegram_id: int,
) -> Tuple[Optional[GitHubClient], Optional[str]]:
    """
    Client acting with the user's stored token.

    Returns (client, None) or (None, message to show the user).
    """
    user = store.get_user(telegram_id)
    if user is None or not user.encrypted_token:
        return None, NOT_CONNECTED_MESSAGE

    token = services.cipher.decrypt_text(user.encrypted_token)
    if token is None:
        logger.warning("Stored token for user %s could not be decrypted", telegram_id)
        return None, AUTH_FAILED_MESSAGE

    return services.github_for(token), None


def forget_revoked_token(telegram_id: int, exc: GitHubAPIError) -> bool:
    """
    Clear the user's token when GitHub says it no longer works.

    Returns True when `exc` was an authentication failure.
    """
    if not exc.is_auth_error:
        return False

    logger.warning("GitHub auth failed for user %s, clearing token", telegram_id)
    try:
        store.clear_user_token(telegram_id)
    except Exception:
        # The user is still told to reconnect
        logger.warning("Token for user %s stays stored", telegram_id)
    return True


def describe_github_error(telegram_id: int, exc: GitHubAPIError) -> str:
    if forget_revoked_token(telegram_id, exc):
        return AUTH_FAILED_MESSAGE
    if exc.is_not_found:
        return "Not found on GitHub, or you lack access to it."
    return f"GitHub error: {escape(exc.message)}"


async def ensure_admin(services: Services, chat_id: int, user_id: int, private: bool) -> bool:
    # Everyone administers their own private chat
    if private:
        return True
    return await is_admin(services.telegram, services.caches.chat_admins, chat_id, user_id)


async def reply(
    services: Services,
    chat_id: int,
    text: str,
    reply_to: Optional[int] = None,
    keyboard: Optional[Keyboard] = None,
) -> Optional[int]:
    try:
        return await services.telegram.send_message(
            chat_id, text, keyboard, reply_to_message_id=reply_to
        )
    except TelegramError:
        logger.exception("Failed to send reply to chat %s", chat_id)
        return None
