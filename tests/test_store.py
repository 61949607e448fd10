"""Tests for the Redis-backed account and link store."""

import pytest

from hookgram.db import store
from hookgram.db.keys import chat_links_key, user_key
from hookgram.db.models import RepoLink, User


class TestUsers:
    def test_upsert_and_get(self, fake_redis):
        store.upsert_user(User(42, 7, "octocat", "sealed", ["repo", "read:user"]))

        user = store.get_user(42)

        assert user == User(42, 7, "octocat", "sealed", ["repo", "read:user"])
        assert fake_redis.data[user_key(42)]["github_username"] == "octocat"

    def test_unknown_user(self):
        assert store.get_user(1) is None

    def test_clear_token_keeps_account(self):
        store.upsert_user(User(42, 7, "octocat", "sealed"))

        store.clear_user_token(42)

        user = store.get_user(42)
        assert user.encrypted_token == ""
        assert user.github_username == "octocat"

    def test_read_failure_returns_none(self, fake_redis):
        fake_redis.fail = True

        assert store.get_user(42) is None

    def test_write_failure_propagates(self, fake_redis):
        fake_redis.fail = True

        with pytest.raises(ConnectionError):
            store.upsert_user(User(42))


class TestLinks:
    def test_links_are_sorted_case_insensitively(self):
        store.add_repo_link(-1, RepoLink("zeta/repo", 1))
        store.add_repo_link(-1, RepoLink("Alpha/repo", 2))
        store.add_repo_link(-1, RepoLink("beta/repo", 3))

        names = [l.repo_full_name for l in store.get_chat_links(-1)]

        assert names == ["Alpha/repo", "beta/repo", "zeta/repo"]

    def test_get_and_remove(self):
        store.add_repo_link(-1, RepoLink("octo/hello", 555))

        assert store.get_repo_link(-1, "octo/hello") == RepoLink("octo/hello", 555)
        assert store.remove_repo_link(-1, "octo/hello") is True
        assert store.remove_repo_link(-1, "octo/hello") is False
        assert store.get_repo_link(-1, "octo/hello") is None

    def test_links_are_per_chat(self):
        store.add_repo_link(-1, RepoLink("octo/hello", 555))

        assert store.get_chat_links(-2) == []

    def test_rename_by_webhook_id(self, fake_redis):
        store.add_repo_link(-1, RepoLink("octo/old", 555))
        store.add_repo_link(-1, RepoLink("octo/other", 777))

        assert store.update_repo_link_name(-1, 555, "octo/new") is True

        assert fake_redis.data[chat_links_key(-1)] == {"octo/new": "555", "octo/other": "777"}

    def test_rename_unknown_hook(self):
        store.add_repo_link(-1, RepoLink("octo/old", 555))

        assert store.update_repo_link_name(-1, 1, "octo/new") is False

    def test_repo_link_parts(self):
        link = RepoLink("octo/hello", 1)

        assert (link.owner, link.name) == ("octo", "hello")


class TestChats:
    def test_upsert_and_get(self):
        store.upsert_chat(-1, "supergroup", "Dev chat")
        store.add_repo_link(-1, RepoLink("octo/hello", 555))

        chat = store.get_chat(-1)

        assert chat.title == "Dev chat"
        assert chat.links == [RepoLink("octo/hello", 555)]
