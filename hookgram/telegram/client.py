from typing import Any, List, Optional

import httpx

from hookgram.logger import get_logger
from hookgram.telegram.keyboards import Keyboard, reply_markup


TELEGRAM_API = "https://api.telegram.org"

logger = get_logger("hookgram.telegram.client")


class TelegramError(Exception):
    """
    Raised when the Bot API rejects a call or cannot be reached.
    """

    def __init__(self, method: str, description: str, error_code: Optional[int] = None):
        super().__init__(f"{method} failed: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class TelegramClient:
    """Minimal Bot API client over a shared httpx.AsyncClient."""

    def __init__(
        self,
        token: str,
        http: Optional[httpx.AsyncClient] = None,
        base_url: str = TELEGRAM_API,
    ):
        self._url = f"{base_url}/bot{token}"
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(30.0))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(
        self,
        method: str,
        http_timeout: Optional[float] = None,
        **params,
    ) -> Any:
        payload = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._http.post(
                f"{self._url}/{method}",
                json=payload,
                timeout=(
                    http_timeout if http_timeout is not None
                    else httpx.USE_CLIENT_DEFAULT
                ),
            )
        except httpx.HTTPError as exc:
            raise TelegramError(method, str(exc)) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TelegramError(
                method, f"non-JSON response ({response.status_code})", response.status_code
            ) from exc

        if not data.get("ok"):
            raise TelegramError(
                method,
                data.get("description", "unknown error"),
                data.get("error_code", response.status_code),
            )

        return data.get("result")

    # =========================================================
    # Messages
    # =========================================================

    async def send_message(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[Keyboard] = None,
        reply_to_message_id: Optional[int] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> int:
        """Send a message and return its message_id."""
        result = await self._call(
            "sendMessage",
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            reply_markup=reply_markup(keyboard),
            link_preview_options={"is_disabled": True},
            reply_parameters=(
                {"message_id": reply_to_message_id, "allow_sending_without_reply": True}
                if reply_to_message_id
                else None
            ),
        )
        return result["message_id"]

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: Optional[Keyboard] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> None:
        await self._call(
            "editMessageText",
            chat_id=chat_id,
            message_id=message_id,
            text=text,
            parse_mode=parse_mode,
            reply_markup=reply_markup(keyboard),
            link_preview_options={"is_disabled": True},
        )

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        show_alert: bool = False,
    ) -> None:
        await self._call(
            "answerCallbackQuery",
            callback_query_id=callback_query_id,
            text=text,
            show_alert=show_alert,
        )

    # =========================================================
    # Chats
    # =========================================================

    async def get_chat_administrators(self, chat_id: int) -> List[int]:
        members = await self._call("getChatAdministrators", chat_id=chat_id)
        return [m["user"]["id"] for m in members]

    async def get_chat_member_status(self, chat_id: int, user_id: int) -> str:
        member = await self._call("getChatMember", chat_id=chat_id, user_id=user_id)
        return member.get("status", "")

    # =========================================================
    # Updates
    # =========================================================

    async def get_me(self) -> dict:
        return await self._call("getMe")

    async def get_updates(
        self,
        offset: Optional[int] = None,
        timeout: int = 30,
        drop_pending: bool = False,
    ) -> List[dict]:
        if drop_pending:
            # offset=-1 acknowledges everything queued before startup
            pending = await self._call("getUpdates", offset=-1, timeout=0) or []
            if pending:
                offset = pending[-1]["update_id"] + 1

        return await self._call(
            "getUpdates",
            # HTTP timeout must outlive the long poll
            http_timeout=timeout + 10,
            offset=offset,
            timeout=timeout,
            allowed_updates=["message", "callback_query"],
        )
