import html
import re
from typing import Optional

from hookgram.callbacks import menus
from hookgram.callbacks.protocol import (
    ADD_REPO_ID,
    ADD_REPO_PAGE,
    CONFIG_NAMESPACE,
    EVENT_PAGE,
    LIST_REPOS,
    PR_APPROVE,
    PR_CLOSE,
    PRESET,
    REPO_MENU,
    TOGGLE_EVENT,
    CallbackAction,
)
from hookgram.commands.repos import link_repository, linked_message, repo_picker
from hookgram.commands.session import (
    ADMIN_ONLY_MESSAGE,
    describe_github_error,
    ensure_admin,
    github_for_user,
)
from hookgram.db import store
from hookgram.db.models import RepoLink
from hookgram.github.api import GitHubAPIError, GitHubClient
from hookgram.github.formatter import escape
from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.settings import ACTION_EXPIRED_MESSAGE
from hookgram.telegram.client import TelegramError
from hookgram.telegram.keyboards import Keyboard, callback_button_or_none
from hookgram.telegram.updates import CallbackQuery


logger = get_logger("hookgram.callbacks")


class CallbackError(Exception):
    """Ends a callback with an alert shown to the user."""


_TAG_RE = re.compile(r"<[^>]+>")


def _plain(text: Optional[str]) -> Optional[str]:
    # Callback alerts are shown without parse mode
    if text is None:
        return None
    return html.unescape(_TAG_RE.sub("", text))


async def _answer(services: Services, query: CallbackQuery, text: Optional[str] = None, alert: bool = False):
    try:
        await services.telegram.answer_callback_query(query.id, _plain(text), show_alert=alert)
    except TelegramError:
        logger.warning("Could not answer callback %s", query.id)


async def _show(services: Services, query: CallbackQuery, text: str, keyboard: Optional[Keyboard] = None):
    try:
        await services.telegram.edit_message_text(query.chat_id, query.message_id, text, keyboard)
    except TelegramError as exc:
        # Pressing the same button twice edits to identical content
        if "not modified" not in exc.description:
            raise


def _client(services: Services, query: CallbackQuery) -> GitHubClient:
    client, error = github_for_user(services, query.user_id)
    if client is None:
        raise CallbackError(error)
    return client


def _link(query: CallbackQuery, repo: str) -> RepoLink:
    link = store.get_repo_link(query.chat_id, repo)
    if link is None:
        raise CallbackError("This repository is not linked to this chat.")
    return link


def _back_to(build) -> Keyboard:
    button = callback_button_or_none("⬅️ Back", build)
    return [[button]] if button else []


# =========================================================
# Settings screens (c:…)
# =========================================================

async def _settings(services: Services, query: CallbackQuery, action: CallbackAction):
    cb = services.callbacks

    if action.kind == LIST_REPOS:
        text, keyboard = menus.repo_list(services, store.get_chat_links(query.chat_id))
        await _show(services, query, text, keyboard)

    elif action.kind == REPO_MENU:
        text, keyboard = menus.repo_menu(services, _link(query, action.repo))
        await _show(services, query, text, keyboard)

    elif action.kind == PRESET:
        link = _link(query, action.repo)
        client = _client(services, query)
        events = ["push"] if action.mode == "push" else [menus.WILDCARD]
        await client.set_hook_events(link.owner, link.name, link.webhook_id, events)

        label = "push events only" if action.mode == "push" else "all events"
        await _show(
            services, query,
            f"✅ <b>{escape(link.repo_full_name)}</b> now delivers {label}.",
            _back_to(lambda: cb.repo_menu(link.repo_full_name)),
        )

    elif action.kind == EVENT_PAGE:
        link = _link(query, action.repo)
        hook = await _client(services, query).get_hook(link.owner, link.name, link.webhook_id)
        enabled = menus.enabled_events(services, hook.get("events"))
        text, keyboard = menus.event_page(services, link, enabled, action.page)
        await _show(services, query, text, keyboard)

    elif action.kind == TOGGLE_EVENT:
        link = _link(query, action.repo)
        client = _client(services, query)
        hook = await client.get_hook(link.owner, link.name, link.webhook_id)
        events = menus.toggled(services, hook.get("events"), action.event)
        await client.set_hook_events(link.owner, link.name, link.webhook_id, events)

        text, keyboard = menus.event_page(services, link, set(events), action.page)
        await _show(services, query, text, keyboard)

    elif action.kind == ADD_REPO_PAGE:
        text, keyboard = await repo_picker(services, _client(services, query), action.page)
        await _show(services, query, text, keyboard)

    elif action.kind == ADD_REPO_ID:
        client = _client(services, query)
        repo = await client.get_repo_by_id(action.repo_id)
        owner, name = repo["full_name"].split("/", 1)

        if store.get_repo_link(query.chat_id, repo["full_name"]) is not None:
            raise CallbackError("This repository is already linked.")

        link = await link_repository(services, client, query.chat_id, owner, name)
        await _show(services, query, linked_message(link), _back_to(cb.list_repos))

    await _answer(services, query)


# =========================================================
# Pull request buttons (act:…)
# =========================================================

async def _pr_action(services: Services, query: CallbackQuery, action: CallbackAction):
    context, found = services.correlation.resolve_action(action.token)
    if not found:
        await _answer(services, query, ACTION_EXPIRED_MESSAGE, alert=True)
        return

    # A button copied to another chat must not act on repos it never linked
    if store.get_repo_link(query.chat_id, context.full_name) is None:
        raise CallbackError("This repository is not linked to this chat.")

    client = _client(services, query)

    if action.kind == PR_APPROVE:
        await client.approve_pull_request(context.owner, context.repo, context.number)
        done = "✅ Pull request approved."
    else:
        await client.set_pull_request_state(context.owner, context.repo, context.number, "closed")
        done = "❌ Pull request closed."

    logger.info(
        "%s %s#%s by user %s", action.kind, context.full_name, context.number, query.user_id
    )
    await _answer(services, query, done)


# =========================================================
# Entry point
# =========================================================

async def handle_callback(services: Services, query: CallbackQuery):
    action = services.callbacks.decode(query.data)
    if action is None:
        logger.warning("Ignoring malformed callback data: %r", query.data)
        await _answer(services, query)
        return

    try:
        if action.kind in (PR_APPROVE, PR_CLOSE):
            await _pr_action(services, query, action)
            return

        if query.data.startswith(CONFIG_NAMESPACE + ":"):
            if not await ensure_admin(services, query.chat_id, query.user_id, query.is_private):
                raise CallbackError(ADMIN_ONLY_MESSAGE)
            await _settings(services, query, action)

    except CallbackError as exc:
        await _answer(services, query, str(exc), alert=True)
    except GitHubAPIError as exc:
        await _answer(services, query, describe_github_error(query.user_id, exc), alert=True)
    except TelegramError:
        logger.exception("Telegram call failed while handling %r", query.data)
        await _answer(services, query)
