"""Tests for the Bot API client, update parsing and admin checks."""

import json

import httpx
import pytest

from hookgram.cache.ttl import TTLCache
from hookgram.telegram.admins import is_admin
from hookgram.telegram.client import TelegramClient, TelegramError
from hookgram.telegram.updates import parse_callback_query, parse_message


def _client(handler) -> TelegramClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramClient("123:ABC", http=http, base_url="https://tg.test")


class TestTelegramClient:
    @pytest.mark.asyncio
    async def test_send_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 77}})

        client = _client(handler)
        message_id = await client.send_message(-1, "<b>hi</b>", [[{"text": "x", "url": "https://x"}]], reply_to_message_id=5)

        assert message_id == 77
        assert seen["path"] == "/bot123:ABC/sendMessage"
        assert seen["body"]["parse_mode"] == "HTML"
        assert seen["body"]["reply_markup"] == {"inline_keyboard": [[{"text": "x", "url": "https://x"}]]}
        assert seen["body"]["reply_parameters"]["message_id"] == 5
        assert seen["body"]["link_preview_options"] == {"is_disabled": True}

    @pytest.mark.asyncio
    async def test_none_params_are_dropped(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "result": True})

        await _client(handler).answer_callback_query("q1")

        assert "text" not in seen["body"]

    @pytest.mark.asyncio
    async def test_api_error(self):
        def handler(request):
            return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "chat not found"})

        with pytest.raises(TelegramError) as exc_info:
            await _client(handler).send_message(-1, "hi")

        assert exc_info.value.error_code == 400
        assert exc_info.value.description == "chat not found"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("down")

        with pytest.raises(TelegramError):
            await _client(handler).get_me()

    @pytest.mark.asyncio
    async def test_admin_ids(self):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "result": [
                {"user": {"id": 1}, "status": "creator"},
                {"user": {"id": 2}, "status": "administrator"},
            ]})

        assert await _client(handler).get_chat_administrators(-1) == [1, 2]

    @pytest.mark.asyncio
    async def test_get_updates_drops_pending(self):
        calls = []

        def handler(request):
            body = json.loads(request.content)
            calls.append(body)
            if body.get("offset") == -1:
                return httpx.Response(200, json={"ok": True, "result": [{"update_id": 41}]})
            return httpx.Response(200, json={"ok": True, "result": []})

        updates = await _client(handler).get_updates(timeout=0, drop_pending=True)

        assert updates == []
        assert calls[1]["offset"] == 42


class TestParseUpdates:
    def test_command_with_args(self):
        msg = parse_message({"message": {
            "message_id": 1,
            "chat": {"id": -5, "type": "group", "title": "T"},
            "from": {"id": 9},
            "text": "/AddRepo@Hookgram_Bot octo/hello",
            "entities": [{"type": "bot_command", "offset": 0, "length": 21}],
        }}, "hookgram_bot")

        assert msg.command == "addrepo"
        assert msg.args == ["octo/hello"]
        assert not msg.is_private

    def test_plain_reply(self):
        msg = parse_message({"message": {
            "message_id": 2,
            "chat": {"id": 9, "type": "private"},
            "from": {"id": 9},
            "text": "thanks",
            "reply_to_message": {"message_id": 1, "from": {"id": 999, "is_bot": True}},
        }})

        assert msg.command is None
        assert msg.reply_to.message_id == 1
        assert msg.reply_to.from_bot
        assert msg.is_private

    def test_non_message_updates(self):
        assert parse_message({"edited_message": {}}) is None
        assert parse_callback_query({"message": {}}) is None

    def test_callback_query(self):
        query = parse_callback_query({"callback_query": {
            "id": "q",
            "from": {"id": 3},
            "data": "c:ls",
            "message": {"message_id": 8, "chat": {"id": -5, "type": "supergroup"}},
        }})

        assert (query.chat_id, query.message_id, query.user_id, query.data) == (-5, 8, 3, "c:ls")


class TestIsAdmin:
    @pytest.mark.asyncio
    async def test_cached_list_is_reused(self, telegram, clock):
        cache = TTLCache(clock)

        assert await is_admin(telegram, cache, -1, 42, ttl=60)
        assert not await is_admin(telegram, cache, -1, 43, ttl=60)

        telegram.get_chat_administrators.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refetch_after_expiry(self, telegram, clock):
        cache = TTLCache(clock)
        await is_admin(telegram, cache, -1, 42, ttl=60)

        clock.advance(60)
        await is_admin(telegram, cache, -1, 42, ttl=60)

        assert telegram.get_chat_administrators.await_count == 2

    @pytest.mark.asyncio
    async def test_fallback_to_member_status(self, telegram, clock):
        cache = TTLCache(clock)
        telegram.get_chat_administrators.side_effect = TelegramError("getChatAdministrators", "forbidden")
        telegram.get_chat_member_status.return_value = "creator"

        assert await is_admin(telegram, cache, -1, 43, ttl=60)
        assert cache.get(-1) == (None, False)

    @pytest.mark.asyncio
    async def test_both_calls_failing_denies(self, telegram, clock):
        telegram.get_chat_administrators.side_effect = TelegramError("getChatAdministrators", "x")
        telegram.get_chat_member_status.side_effect = TelegramError("getChatMember", "x")

        assert not await is_admin(telegram, TTLCache(clock), -1, 42, ttl=60)
