from typing import Optional

from fastapi import HTTPException

from hookgram.db import store
from hookgram.db.models import User
from hookgram.github.api import GitHubAPIError
from hookgram.github.formatter import user_link
from hookgram.github.oauth import OAuthError
from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.telegram.client import TelegramError


logger = get_logger("hookgram.github.connect")


async def complete_oauth(
    services: Services,
    code: Optional[str],
    state: Optional[str],
) -> User:
    """
    Finish /connect: trade the code for a token and store it encrypted.

    The state is consumed before the exchange, so a callback URL works
    at most once. Raises HTTPException(400) for a missing code or unknown
    state and HTTPException(500) when GitHub or the store fails.
    """
    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing code or state")

    telegram_id, found = services.caches.oauth_states.get(state)
    if not found:
        logger.warning("OAuth callback with unknown or expired state")
        raise HTTPException(status_code=400, detail="Invalid or expired state")
    services.caches.oauth_states.delete(state)

    try:
        token = await services.oauth.exchange_code(code)
    except OAuthError:
        logger.exception("OAuth exchange failed for user %s", telegram_id)
        raise HTTPException(status_code=500, detail="Token exchange failed")

    try:
        gh_user = await services.github_for(token.access_token).get_authenticated_user()
    except GitHubAPIError:
        logger.exception("Could not load GitHub user for %s", telegram_id)
        raise HTTPException(status_code=500, detail="Could not load GitHub user")

    user = User(
        telegram_id=telegram_id,
        github_user_id=gh_user.get("id", 0),
        github_username=gh_user.get("login", ""),
        encrypted_token=services.cipher.encrypt_text(token.access_token),
        scopes=token.scopes,
    )

    try:
        store.upsert_user(user)
    except Exception:
        raise HTTPException(status_code=500, detail="Could not save account")

    logger.info("User %s connected as %s", telegram_id, user.github_username)

    try:
        await services.telegram.send_message(
            telegram_id,
            f"✅ Connected as {user_link(user.github_username)}.\n"
            f"Use /addrepo in a chat to link a repository.",
        )
    except TelegramError:
        logger.warning("Could not notify user %s about the connection", telegram_id)

    return user
