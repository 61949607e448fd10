"""Test configuration and fixtures.

Provides isolated fixtures for:
- A controllable clock for TTL tables
- An in-memory stand-in for the Redis hash commands the store uses
- Mocked Telegram and GitHub clients
- Wired Services and an ASGI HTTP client
"""

import asyncio
import itertools
import json
from collections.abc import AsyncGenerator
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hookgram.cache.state import CacheState
from hookgram.db import store
from hookgram.db.models import User
from hookgram.db.redis_client import set_redis
from hookgram.github.api import GitHubClient
from hookgram.github.oauth import OAuthClient
from hookgram.main import create_app
from hookgram.security.cipher import AESGCMCipher
from hookgram.security.webhook_verify import compute_signature
from hookgram.services import Services
from hookgram.telegram.client import TelegramClient


TEST_KEY = "0123456789abcdef0123456789abcdef"
WEBHOOK_SECRET = "test-webhook-secret"
PUBLIC_URL = "https://hooks.example.com"

GROUP_ID = -1001234567890
ADMIN_ID = 42
MEMBER_ID = 43


# =============================================================================
# Test doubles
# =============================================================================

class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._ops = []

    def hset(self, *args, **kwargs):
        self._ops.append(("hset", args, kwargs))
        return self

    def hdel(self, *args):
        self._ops.append(("hdel", args, {}))
        return self

    def execute(self):
        return [getattr(self._redis, op)(*args, **kwargs) for op, args, kwargs in self._ops]


class FakeRedis:
    """Hash commands of a decode_responses=True client, kept in a dict."""

    def __init__(self):
        self.data: dict = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    def hgetall(self, name):
        self._check()
        return dict(self.data.get(name, {}))

    def hget(self, name, key):
        self._check()
        return self.data.get(name, {}).get(key)

    def hset(self, name, key=None, value=None, mapping=None):
        self._check()
        h = self.data.setdefault(name, {})
        added = 0
        items = dict(mapping or {})
        if key is not None:
            items[key] = value
        for k, v in items.items():
            added += k not in h
            h[k] = str(v)
        return added

    def hdel(self, name, *keys):
        self._check()
        h = self.data.get(name, {})
        removed = 0
        for k in keys:
            if k in h:
                del h[k]
                removed += 1
        return removed

    def pipeline(self):
        return FakePipeline(self)


# =============================================================================
# Core fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def fake_redis():
    """Every test gets a fresh, empty store."""
    redis = FakeRedis()
    set_redis(redis)
    yield redis
    set_redis(None)


@pytest.fixture
def telegram() -> MagicMock:
    """Telegram client whose sendMessage returns increasing message ids."""
    client = MagicMock(spec=TelegramClient)
    ids = itertools.count(100)
    client.send_message = AsyncMock(side_effect=lambda *a, **kw: next(ids))
    client.edit_message_text = AsyncMock(return_value=None)
    client.answer_callback_query = AsyncMock(return_value=None)
    client.get_chat_administrators = AsyncMock(return_value=[ADMIN_ID])
    client.get_chat_member_status = AsyncMock(return_value="member")
    client.get_me = AsyncMock(return_value={"id": 999, "username": "hookgram_bot"})
    client.get_updates = AsyncMock(return_value=[])
    client.aclose = AsyncMock(return_value=None)
    return client


@pytest.fixture
def github() -> MagicMock:
    """GitHub client handed out for every user token."""
    client = MagicMock(spec=GitHubClient)
    client.create_hook = AsyncMock(return_value={"id": 555})
    client.get_hook = AsyncMock(return_value={"id": 555, "events": ["push"]})
    client.set_hook_events = AsyncMock(return_value={})
    client.delete_hook = AsyncMock(return_value=None)
    client.get_repo = AsyncMock(return_value={"id": 1, "full_name": "octo/hello"})
    client.get_repo_by_id = AsyncMock(return_value={"id": 1, "full_name": "octo/hello"})
    client.approve_pull_request = AsyncMock(return_value={})
    client.set_pull_request_state = AsyncMock(return_value={})
    client.set_issue_state = AsyncMock(return_value={})
    client.create_issue_comment = AsyncMock(return_value={})
    client.reply_to_review_comment = AsyncMock(return_value={})
    client.get_authenticated_user = AsyncMock(return_value={"id": 7, "login": "octocat"})
    return client


@pytest.fixture
def services(telegram, github, clock) -> Services:
    svc = Services(
        telegram=telegram,
        cipher=AESGCMCipher(TEST_KEY),
        caches=CacheState(clock),
        oauth=MagicMock(spec=OAuthClient),
        webhook_secret=WEBHOOK_SECRET,
        public_url=PUBLIC_URL,
        github_factory=MagicMock(return_value=github),
    )
    svc.bot_username = "hookgram_bot"
    svc.bot_user_id = 999
    return svc


@pytest_asyncio.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app wired to test services."""
    async with AsyncClient(
        transport=ASGITransport(app=create_app(services)),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def drain(services):
    """Wait for every background delivery started so far."""
    async def _drain():
        while services.background_tasks:
            await asyncio.gather(*list(services.background_tasks))
    return _drain


# =============================================================================
# Helpers
# =============================================================================

@pytest.fixture
def connect_user(services):
    """Store a linked GitHub account for a Telegram user."""
    def _connect(telegram_id: int = ADMIN_ID, token: str = "gho_test_token") -> User:
        user = User(
            telegram_id=telegram_id,
            github_user_id=7,
            github_username="octocat",
            encrypted_token=services.cipher.encrypt_text(token),
            scopes=["repo"],
        )
        store.upsert_user(user)
        return user
    return _connect


@pytest.fixture
def signed(services):
    """Build body and headers for a signed webhook delivery."""
    def _signed(event: str, payload: dict, hook_id: Optional[int] = None):
        body = json.dumps(payload).encode()
        headers = {
            "X-GitHub-Event": event,
            "X-Hub-Signature-256": compute_signature(body, WEBHOOK_SECRET),
            "Content-Type": "application/json",
        }
        if hook_id is not None:
            headers["X-GitHub-Hook-ID"] = str(hook_id)
        return body, headers
    return _signed


@pytest.fixture
def make_message():
    """Raw Bot API message update."""
    counter = itertools.count(1)

    def _make(
        text: str,
        chat_id: int = GROUP_ID,
        chat_type: str = "supergroup",
        user_id: int = ADMIN_ID,
        message_id: int = 10,
        reply_to: Optional[int] = None,
        reply_from_bot: bool = True,
    ) -> dict:
        message = {
            "message_id": message_id,
            "chat": {"id": chat_id, "type": chat_type, "title": "Dev chat"},
            "from": {"id": user_id, "is_bot": False},
            "text": text,
        }
        if text.startswith("/"):
            command = text.split()[0]
            message["entities"] = [
                {"type": "bot_command", "offset": 0, "length": len(command)}
            ]
        if reply_to is not None:
            message["reply_to_message"] = {
                "message_id": reply_to,
                "from": {"id": 999 if reply_from_bot else 77, "is_bot": reply_from_bot},
            }
        return {"update_id": next(counter), "message": message}

    return _make


@pytest.fixture
def make_callback():
    """Raw Bot API callback_query update."""
    def _make(
        data: str,
        chat_id: int = GROUP_ID,
        chat_type: str = "supergroup",
        user_id: int = ADMIN_ID,
        message_id: int = 50,
    ) -> dict:
        return {
            "update_id": 1,
            "callback_query": {
                "id": "cbq-1",
                "from": {"id": user_id},
                "data": data,
                "message": {
                    "message_id": message_id,
                    "chat": {"id": chat_id, "type": chat_type},
                },
            },
        }
    return _make


# =============================================================================
# Sample payloads
# =============================================================================

def repository(full_name: str = "octo/hello") -> dict:
    owner, name = full_name.split("/")
    return {
        "id": 1,
        "name": name,
        "full_name": full_name,
        "html_url": f"https://github.com/{full_name}",
        "owner": {"login": owner},
        "stargazers_count": 10,
        "forks_count": 2,
    }


@pytest.fixture
def pr_opened_payload() -> dict:
    return {
        "action": "opened",
        "repository": repository(),
        "sender": {"login": "alice"},
        "pull_request": {
            "number": 7,
            "title": "Add <feature>",
            "body": "Implements the thing",
            "html_url": "https://github.com/octo/hello/pull/7",
            "state": "open",
        },
    }


@pytest.fixture
def issue_comment_payload() -> dict:
    return {
        "action": "created",
        "repository": repository(),
        "sender": {"login": "bob"},
        "issue": {
            "number": 3,
            "title": "Bug",
            "html_url": "https://github.com/octo/hello/issues/3",
        },
        "comment": {
            "id": 9001,
            "body": "Looks broken",
            "html_url": "https://github.com/octo/hello/issues/3#issuecomment-9001",
        },
    }


@pytest.fixture
def review_comment_payload() -> dict:
    return {
        "action": "created",
        "repository": repository(),
        "sender": {"login": "carol"},
        "pull_request": {
            "number": 8,
            "title": "Refactor",
            "html_url": "https://github.com/octo/hello/pull/8",
            "state": "open",
        },
        "comment": {
            "id": 4242,
            "body": "nit: rename",
            "html_url": "https://github.com/octo/hello/pull/8#discussion_r4242",
        },
    }


@pytest.fixture
def repo_payload() -> dict:
    return repository()
