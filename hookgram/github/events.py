from typing import Optional

from hookgram.callbacks.protocol import PR_APPROVE, PR_CLOSE
from hookgram.correlation import context_for_event
from hookgram.db import store
from hookgram.github.formatter import format_event, normalize_message
from hookgram.github.payloads import PullRequestEvent, RepositoryEvent, WebhookEvent
from hookgram.logger import get_logger
from hookgram.models import PRActionContext
from hookgram.services import Services
from hookgram.telegram.client import TelegramError
from hookgram.telegram.keyboards import Keyboard, callback_button


logger = get_logger("hookgram.github.events")

# Pull request actions that get inline Approve / Close buttons
ACTIONABLE_PR_ACTIONS = ("opened", "reopened", "ready_for_review")


def _handle_rename(event: RepositoryEvent, chat_id: int, hook_id: Optional[int]):
    new_full = event.repo_full_name
    if not new_full or not hook_id:
        return

    try:
        updated = store.update_repo_link_name(chat_id, hook_id, new_full)
    except Exception:
        # Already logged by the store; the notification still goes out
        return

    if updated:
        logger.info("Updated repo name to %s for chat %s", new_full, chat_id)
    else:
        logger.warning("No link with hook %s in chat %s to rename", hook_id, chat_id)


def _with_pr_actions(
    services: Services,
    event: WebhookEvent,
    keyboard: Optional[Keyboard],
) -> Optional[Keyboard]:
    if not isinstance(event, PullRequestEvent):
        return keyboard
    if event.action not in ACTIONABLE_PR_ACTIONS or event.pull_request.state != "open":
        return keyboard

    repo = event.repository
    if repo is None or not repo.owner_login or not repo.name:
        return keyboard

    token = services.correlation.issue_action_token(
        PRActionContext(repo.owner_login, repo.name, event.pull_request.number)
    )
    row = [
        callback_button("✅ Approve", services.callbacks.pr_action(PR_APPROVE, token)),
        callback_button("❌ Close", services.callbacks.pr_action(PR_CLOSE, token)),
    ]
    return (keyboard or []) + [row]


async def handle_event(
    services: Services,
    event: WebhookEvent,
    chat_id: int,
    hook_id: Optional[int] = None,
):
    """
    Deliver one verified webhook event to its chat.

    Runs in the background after the HTTP response was sent, so failures
    are logged and dropped.
    """
    try:
        # ---------------------------------------------------------
        # 1. Repository renamed → keep the chat's link in sync
        # ---------------------------------------------------------
        if isinstance(event, RepositoryEvent) and event.action == "renamed":
            _handle_rename(event, chat_id, hook_id)

        # ---------------------------------------------------------
        # 2. Render; empty text means nothing worth sending
        # ---------------------------------------------------------
        text, keyboard = format_event(event)
        if not text:
            return

        text = normalize_message(text)
        keyboard = _with_pr_actions(services, event, keyboard)

        # ---------------------------------------------------------
        # 3. Send and remember what the message was about
        # ---------------------------------------------------------
        try:
            message_id = await services.telegram.send_message(chat_id, text, keyboard)
        except TelegramError:
            logger.exception("Error sending %s message to chat %s", event.event_name, chat_id)
            return

        context = context_for_event(event)
        if context is not None:
            services.correlation.record_notification(chat_id, message_id, context)

    except Exception:
        # Never crash webhook processing
        logger.exception("Unhandled error while processing event: %s", event.event_name)
