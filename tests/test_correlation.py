"""Tests for linking notifications and buttons back to GitHub entities."""

import json

import pytest

from hookgram.cache.state import CacheState
from hookgram.correlation import CorrelationManager, context_for_event
from hookgram.github.payloads import parse_event
from hookgram.models import ISSUE_COMMENT, PR, PR_REVIEW_COMMENT, MessageContext, PRActionContext


@pytest.fixture
def caches(clock) -> CacheState:
    return CacheState(clock)


@pytest.fixture
def manager(caches) -> CorrelationManager:
    return CorrelationManager(
        caches.message_contexts,
        caches.pr_actions,
        context_ttl=3600,
        action_ttl=600,
    )


def _event(event_type: str, payload: dict):
    return parse_event(event_type, json.dumps(payload).encode())


class TestContextForEvent:
    def test_pull_request(self, pr_opened_payload):
        context = context_for_event(_event("pull_request", pr_opened_payload))

        assert context == MessageContext("octo", "hello", 7, PR)

    def test_issue_comment_keeps_comment_id(self, issue_comment_payload):
        context = context_for_event(_event("issue_comment", issue_comment_payload))

        assert context.type == ISSUE_COMMENT
        assert context.number == 3
        assert context.comment_id == 9001

    def test_review_comment(self, review_comment_payload):
        context = context_for_event(_event("pull_request_review_comment", review_comment_payload))

        assert context.type == PR_REVIEW_COMMENT
        assert context.comment_id == 4242
        assert context.is_pull_request

    def test_uncorrelated_kinds(self, repo_payload):
        assert context_for_event(_event("star", {"action": "created", "repository": repo_payload})) is None
        assert context_for_event(_event("push", {"repository": repo_payload})) is None

    def test_missing_repository(self, pr_opened_payload):
        del pr_opened_payload["repository"]

        assert context_for_event(_event("pull_request", pr_opened_payload)) is None


class TestReplies:
    def test_resolve_recorded_notification(self, manager):
        context = MessageContext("octo", "hello", 7, PR)
        manager.record_notification(-100, 55, context)

        assert manager.resolve_reply(-100, 55) == (context, True)

    def test_other_chat_does_not_resolve(self, manager):
        manager.record_notification(-100, 55, MessageContext("octo", "hello", 7, PR))

        assert manager.resolve_reply(-200, 55) == (None, False)

    def test_context_expires(self, manager, clock):
        manager.record_notification(-100, 55, MessageContext("octo", "hello", 7, PR))

        clock.advance(3600)

        assert manager.resolve_reply(-100, 55) == (None, False)

    def test_unknown_entity_type_is_rejected(self):
        with pytest.raises(ValueError):
            MessageContext("octo", "hello", 7, "discussion")


class TestActionTokens:
    def test_issue_and_resolve(self, manager):
        context = PRActionContext("octo", "hello", 7)

        token = manager.issue_action_token(context)

        assert len(token) == 32
        assert manager.resolve_action(token) == (context, True)

    def test_tokens_are_unique(self, manager):
        context = PRActionContext("octo", "hello", 7)

        assert manager.issue_action_token(context) != manager.issue_action_token(context)

    @pytest.mark.parametrize("token", [None, "", "0" * 32])
    def test_unknown_tokens(self, manager, token):
        assert manager.resolve_action(token) == (None, False)

    def test_action_expires(self, manager, clock):
        token = manager.issue_action_token(PRActionContext("octo", "hello", 7))

        clock.advance(601)

        assert manager.resolve_action(token) == (None, False)
