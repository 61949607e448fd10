"""Tests for rendering events as Telegram HTML."""

import json

from hookgram.github.formatter import format_event, normalize_message, quote_body
from hookgram.github.payloads import parse_event


def _event(event_type: str, payload: dict):
    return parse_event(event_type, json.dumps(payload).encode())


def _commit(sha: str, message: str) -> dict:
    return {
        "id": sha,
        "message": message,
        "url": f"https://github.com/octo/hello/commit/{sha}",
        "author": {"name": "Alice", "username": "alice"},
    }


class TestPush:
    def test_zero_commits_renders_nothing(self, repo_payload):
        text, keyboard = format_event(_event("push", {
            "ref": "refs/heads/main",
            "repository": repo_payload,
            "commits": [],
        }))

        assert text == ""
        assert keyboard is None

    def test_single_commit(self, repo_payload):
        text, keyboard = format_event(_event("push", {
            "ref": "refs/heads/main",
            "repository": repo_payload,
            "commits": [_commit("abcdef1234567", "Fix bug\n\nlong body")],
        }))

        assert "1 new commit to" in text
        assert "hello:main" in text
        assert "abcdef1" in text
        assert "long body" not in text
        assert keyboard[0][0]["text"] == "View Commit"

    def test_many_commits_link_to_compare(self, repo_payload):
        text, keyboard = format_event(_event("push", {
            "ref": "refs/heads/dev",
            "compare": "https://github.com/octo/hello/compare/a...b",
            "repository": repo_payload,
            "commits": [_commit(f"{i:07d}aaaa", f"change {i}") for i in range(3)],
        }))

        assert "3 new commits to" in text
        assert keyboard[0][0]["url"].endswith("compare/a...b")

    def test_oversized_push_is_summarised(self, repo_payload):
        text, _ = format_event(_event("push", {
            "ref": "refs/heads/main",
            "repository": repo_payload,
            "commits": [_commit(f"{i:07d}bbbb", "x" * 200) for i in range(40)],
        }))

        assert "Too many commits" in text
        assert len(text) < 4000


class TestPullRequest:
    def test_opened_escapes_html(self, pr_opened_payload):
        text, keyboard = format_event(_event("pull_request", pr_opened_payload))

        assert "Add &lt;feature&gt;" in text
        assert "<blockquote>Implements the thing</blockquote>" in text
        assert keyboard == [[{"text": "View PR", "url": "https://github.com/octo/hello/pull/7"}]]

    def test_merged(self, pr_opened_payload):
        pr_opened_payload["action"] = "closed"
        pr_opened_payload["pull_request"]["merged"] = True

        text, _ = format_event(_event("pull_request", pr_opened_payload))

        assert "Merged" in text


class TestOtherEvents:
    def test_star_created_and_deleted(self, repo_payload):
        created, _ = format_event(_event("star", {"action": "created", "repository": repo_payload, "sender": {"login": "eve"}}))
        deleted, _ = format_event(_event("star", {"action": "deleted", "repository": repo_payload, "sender": {"login": "eve"}}))

        assert " starred " in created
        assert "unstarred" in deleted

    def test_repository_renamed_shows_previous_name(self, repo_payload):
        text, _ = format_event(_event("repository", {
            "action": "renamed",
            "repository": repo_payload,
            "changes": {"repository": {"name": {"from": "old-hello"}}},
        }))

        assert "Previous name:</b> old-hello" in text

    def test_generic_event_summary(self, repo_payload):
        text, keyboard = format_event(_event("workflow_run", {
            "action": "completed",
            "repository": repo_payload,
            "sender": {"login": "ci"},
        }))

        assert "workflow run</b> completed" in text
        assert keyboard[0][0]["text"] == "View Repository"


class TestHelpers:
    def test_normalize_message(self):
        assert normalize_message("a  \n\n\n\nb\t\n") == "a\n\nb"

    def test_quote_body_truncates(self):
        quoted = quote_body("y" * 1000, limit=10)

        assert quoted == "<blockquote>" + "y" * 10 + "…</blockquote>"

    def test_quote_body_empty(self):
        assert quote_body("   ") == ""
