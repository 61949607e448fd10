"""
Slash command handlers.

Each handler takes (services, message). COMMANDS maps every accepted
command name, aliases included, to its handler.
"""
import math
from typing import Awaitable, Callable, Dict

from hookgram.callbacks.menus import repo_list
from hookgram.commands.repos import (
    link_repository,
    linked_message,
    repo_picker,
    split_full_name,
)
from hookgram.commands.session import (
    ADMIN_ONLY_MESSAGE,
    describe_github_error,
    ensure_admin,
    github_for_user,
    reply,
)
from hookgram.db import store
from hookgram.github.api import GitHubAPIError
from hookgram.github.formatter import escape, link, repo_link
from hookgram.github.oauth import generate_state
from hookgram.logger import get_logger
from hookgram.models import MessageContext
from hookgram.services import Services
from hookgram.settings import (
    CONTEXT_EXPIRED_MESSAGE,
    HELP_MESSAGE,
    PRIVACY_MESSAGE,
    START_MESSAGE,
)
from hookgram.telegram.admins import ADMIN_STATUSES
from hookgram.telegram.client import TelegramError
from hookgram.telegram.updates import IncomingMessage


logger = get_logger("hookgram.commands")

Handler = Callable[[Services, IncomingMessage], Awaitable[None]]


# =========================================================
# Static
# =========================================================

async def start(services: Services, msg: IncomingMessage):
    await reply(services, msg.chat_id, START_MESSAGE)


async def help_(services: Services, msg: IncomingMessage):
    await reply(services, msg.chat_id, HELP_MESSAGE)


async def privacy(services: Services, msg: IncomingMessage):
    await reply(services, msg.chat_id, PRIVACY_MESSAGE)


# =========================================================
# Account
# =========================================================

async def connect(services: Services, msg: IncomingMessage):
    if not msg.is_private:
        await reply(
            services, msg.chat_id,
            "Please use /connect in a private chat with me.",
            reply_to=msg.message_id,
        )
        return

    state = generate_state()
    services.caches.oauth_states.set(state, msg.user_id, services.oauth_state_ttl)

    minutes = int(services.oauth_state_ttl // 60)
    await reply(
        services, msg.chat_id,
        f"{link('🔗 Connect GitHub', services.oauth.login_url(state))}\n"
        f"The link is valid for {minutes} minutes.",
    )


async def logout(services: Services, msg: IncomingMessage):
    user = store.get_user(msg.user_id)
    if user is None or not user.encrypted_token:
        await reply(services, msg.chat_id, "You are not connected.", reply_to=msg.message_id)
        return

    try:
        store.clear_user_token(msg.user_id)
    except Exception:
        await reply(services, msg.chat_id, "Logout failed, please try again.", reply_to=msg.message_id)
        return

    await reply(services, msg.chat_id, "👋 Your GitHub token has been removed.", reply_to=msg.message_id)


# =========================================================
# Repository management
# =========================================================

async def _require_admin(services: Services, msg: IncomingMessage) -> bool:
    if await ensure_admin(services, msg.chat_id, msg.user_id, msg.is_private):
        return True
    await reply(services, msg.chat_id, ADMIN_ONLY_MESSAGE, reply_to=msg.message_id)
    return False


async def add_repo(services: Services, msg: IncomingMessage):
    if not await _require_admin(services, msg):
        return

    client, error = github_for_user(services, msg.user_id)
    if client is None:
        await reply(services, msg.chat_id, error, reply_to=msg.message_id)
        return

    try:
        # -------------------------------------------------
        # No argument → let the user pick from their repos
        # -------------------------------------------------
        if not msg.args:
            text, keyboard = await repo_picker(services, client, 1)
            await reply(services, msg.chat_id, text, keyboard=keyboard)
            return

        parsed = split_full_name(msg.args[0])
        if parsed is None:
            await reply(
                services, msg.chat_id,
                "Usage: /addrepo owner/repo",
                reply_to=msg.message_id,
            )
            return

        repo = await client.get_repo(*parsed)
        full_name = repo.get("full_name") or "/".join(parsed)
        owner, name = full_name.split("/", 1)

        if store.get_repo_link(msg.chat_id, full_name) is not None:
            await reply(
                services, msg.chat_id,
                f"<b>{escape(full_name)}</b> is already linked here.",
                reply_to=msg.message_id,
            )
            return

        linked = await link_repository(services, client, msg.chat_id, owner, name)

    except GitHubAPIError as exc:
        await reply(
            services, msg.chat_id,
            describe_github_error(msg.user_id, exc),
            reply_to=msg.message_id,
        )
        return
    except Exception:
        logger.exception("Failed to add repo for chat %s", msg.chat_id)
        await reply(services, msg.chat_id, "Could not link the repository.", reply_to=msg.message_id)
        return

    await reply(services, msg.chat_id, linked_message(linked), reply_to=msg.message_id)


async def remove_repo(services: Services, msg: IncomingMessage):
    if not await _require_admin(services, msg):
        return

    parsed = split_full_name(msg.args[0]) if msg.args else None
    if parsed is None:
        await reply(services, msg.chat_id, "Usage: /removerepo owner/repo", reply_to=msg.message_id)
        return

    full_name = "/".join(parsed)
    # GitHub names are case-insensitive; links are stored with GitHub's casing
    linked = next(
        (l for l in store.get_chat_links(msg.chat_id) if l.repo_full_name.lower() == full_name.lower()),
        None,
    )
    if linked is None:
        await reply(
            services, msg.chat_id,
            f"<b>{escape(full_name)}</b> is not linked to this chat.",
            reply_to=msg.message_id,
        )
        return

    # Best effort: the link is dropped even if the hook cannot be deleted
    client, _ = github_for_user(services, msg.user_id)
    if client is not None and linked.webhook_id:
        try:
            await client.delete_hook(linked.owner, linked.name, linked.webhook_id)
        except GitHubAPIError as exc:
            logger.warning("Could not delete hook for %s: %s", full_name, exc)

    try:
        store.remove_repo_link(msg.chat_id, linked.repo_full_name)
    except Exception:
        await reply(services, msg.chat_id, "Could not unlink the repository.", reply_to=msg.message_id)
        return

    await reply(
        services, msg.chat_id,
        f"🗑️ Unlinked <b>{escape(linked.repo_full_name)}</b>.",
        reply_to=msg.message_id,
    )


async def list_repos(services: Services, msg: IncomingMessage):
    links = store.get_chat_links(msg.chat_id)
    if not links:
        await reply(services, msg.chat_id, "No repositories are linked to this chat.")
        return

    lines = ["<b>Linked repositories:</b>"]
    lines += [f"• {repo_link(l.repo_full_name)}" for l in links]
    await reply(services, msg.chat_id, "\n".join(lines))


async def settings_menu(services: Services, msg: IncomingMessage):
    if not await _require_admin(services, msg):
        return

    text, keyboard = repo_list(services, store.get_chat_links(msg.chat_id))
    await reply(services, msg.chat_id, text, keyboard=keyboard)


async def reload_admins(services: Services, msg: IncomingMessage):
    if msg.is_private:
        await reply(services, msg.chat_id, "/reload only works in groups.")
        return

    caches = services.caches
    now = caches.clock()

    allowed_at, limited = caches.reload_limits.get(msg.chat_id)
    if limited and allowed_at > now:
        minutes = max(1, math.ceil((allowed_at - now) / 60))
        await reply(
            services, msg.chat_id,
            f"⏳ Admins were reloaded recently. Try again in {minutes} min.",
            reply_to=msg.message_id,
        )
        return

    # Ask Telegram directly; the cached list is what we are replacing
    try:
        status = await services.telegram.get_chat_member_status(msg.chat_id, msg.user_id)
    except TelegramError:
        logger.exception("Could not check member %s in chat %s", msg.user_id, msg.chat_id)
        await reply(services, msg.chat_id, "Could not verify your permissions.", reply_to=msg.message_id)
        return

    if status not in ADMIN_STATUSES:
        await reply(services, msg.chat_id, ADMIN_ONLY_MESSAGE, reply_to=msg.message_id)
        return

    caches.chat_admins.delete(msg.chat_id)
    caches.reload_limits.set(
        msg.chat_id, now + services.reload_cooldown, services.reload_cooldown
    )
    logger.info("Admin cache cleared for chat %s", msg.chat_id)

    await reply(services, msg.chat_id, "🔄 Admin list reloaded.", reply_to=msg.message_id)


# =========================================================
# Reply-based actions
# =========================================================

async def _replied_context(services: Services, msg: IncomingMessage):
    if msg.reply_to is None:
        await reply(
            services, msg.chat_id,
            f"Reply to a notification to use /{msg.command}.",
            reply_to=msg.message_id,
        )
        return None

    context, found = services.correlation.resolve_reply(msg.chat_id, msg.reply_to.message_id)
    if not found:
        await reply(services, msg.chat_id, CONTEXT_EXPIRED_MESSAGE, reply_to=msg.message_id)
        return None
    return context


async def _run_action(services: Services, msg: IncomingMessage, context: MessageContext, action, done: str):
    client, error = github_for_user(services, msg.user_id)
    if client is None:
        await reply(services, msg.chat_id, error, reply_to=msg.message_id)
        return

    try:
        await action(client)
    except GitHubAPIError as exc:
        await reply(
            services, msg.chat_id,
            describe_github_error(msg.user_id, exc),
            reply_to=msg.message_id,
        )
        return

    logger.info("%s %s#%s by user %s", msg.command, context.full_name, context.number, msg.user_id)
    await reply(services, msg.chat_id, done, reply_to=msg.message_id)


async def close(services: Services, msg: IncomingMessage):
    context = await _replied_context(services, msg)
    if context is None:
        return

    await _run_action(
        services, msg, context,
        lambda c: c.set_issue_state(context.owner, context.repo, context.number, "closed"),
        f"🔒 Closed {escape(context.full_name)}#{context.number}.",
    )


async def reopen(services: Services, msg: IncomingMessage):
    context = await _replied_context(services, msg)
    if context is None:
        return

    await _run_action(
        services, msg, context,
        lambda c: c.set_issue_state(context.owner, context.repo, context.number, "open"),
        f"🔓 Reopened {escape(context.full_name)}#{context.number}.",
    )


async def approve(services: Services, msg: IncomingMessage):
    context = await _replied_context(services, msg)
    if context is None:
        return

    if not context.is_pull_request:
        await reply(services, msg.chat_id, "Only pull requests can be approved.", reply_to=msg.message_id)
        return

    await _run_action(
        services, msg, context,
        lambda c: c.approve_pull_request(context.owner, context.repo, context.number),
        f"✅ Approved {escape(context.full_name)}#{context.number}.",
    )


COMMANDS: Dict[str, Handler] = {
    "start": start,
    "help": help_,
    "privacy": privacy,
    "connect": connect,
    "logout": logout,
    "addrepo": add_repo,
    "add": add_repo,
    "removerepo": remove_repo,
    "rm": remove_repo,
    "repos": list_repos,
    "settings": settings_menu,
    "config": settings_menu,
    "reload": reload_admins,
    "close": close,
    "reopen": reopen,
    "approve": approve,
}
