"""
Links sent Telegram messages and inline buttons back to GitHub entities.

Message contexts are keyed by (chat id, message id). Inline buttons carry
a random action id that points into a server-side table.
"""
import secrets
from typing import Optional, Tuple

from hookgram.cache.ttl import TTLCache
from hookgram.github.payloads import (
    IssueCommentEvent,
    IssuesEvent,
    PullRequestEvent,
    PullRequestReviewCommentEvent,
    PullRequestReviewEvent,
    WebhookEvent,
)
from hookgram.models import (
    ISSUE,
    ISSUE_COMMENT,
    PR,
    PR_REVIEW,
    PR_REVIEW_COMMENT,
    MessageContext,
    PRActionContext,
)
from hookgram.settings import ACTION_TTL_HOURS, MESSAGE_CONTEXT_TTL_HOURS


ACTION_ID_BYTES = 16


def message_key(chat_id: int, message_id: int) -> str:
    return f"{chat_id}:{message_id}"


def context_for_event(event: WebhookEvent) -> Optional[MessageContext]:
    """Correlation context for the event kinds users can act on."""
    repo = event.repository
    if repo is None:
        return None

    owner, name = repo.owner_login, repo.name
    if not owner or not name:
        return None

    if isinstance(event, PullRequestEvent):
        return MessageContext(owner, name, event.pull_request.number, PR)

    if isinstance(event, IssuesEvent):
        return MessageContext(owner, name, event.issue.number, ISSUE)

    if isinstance(event, IssueCommentEvent):
        return MessageContext(
            owner, name, event.issue.number, ISSUE_COMMENT,
            comment_id=event.comment.id,
        )

    if isinstance(event, PullRequestReviewEvent):
        return MessageContext(owner, name, event.pull_request.number, PR_REVIEW)

    if isinstance(event, PullRequestReviewCommentEvent):
        return MessageContext(
            owner, name, event.pull_request.number, PR_REVIEW_COMMENT,
            comment_id=event.comment.id,
        )

    return None


class CorrelationManager:
    def __init__(
        self,
        message_contexts: TTLCache[str, MessageContext],
        pr_actions: TTLCache[str, PRActionContext],
        context_ttl: float = MESSAGE_CONTEXT_TTL_HOURS * 3600,
        action_ttl: float = ACTION_TTL_HOURS * 3600,
    ):
        self._contexts = message_contexts
        self._actions = pr_actions
        self._context_ttl = context_ttl
        self._action_ttl = action_ttl

    def record_notification(
        self,
        chat_id: int,
        message_id: int,
        context: MessageContext,
    ) -> None:
        self._contexts.set(message_key(chat_id, message_id), context, self._context_ttl)

    def resolve_reply(
        self,
        chat_id: int,
        replied_to_message_id: int,
    ) -> Tuple[Optional[MessageContext], bool]:
        return self._contexts.get(message_key(chat_id, replied_to_message_id))

    def issue_action_token(self, context: PRActionContext) -> str:
        action_id = secrets.token_hex(ACTION_ID_BYTES)
        self._actions.set(action_id, context, self._action_ttl)
        return action_id

    def resolve_action(
        self,
        action_id: Optional[str],
    ) -> Tuple[Optional[PRActionContext], bool]:
        if not action_id:
            return None, False
        return self._actions.get(action_id)
