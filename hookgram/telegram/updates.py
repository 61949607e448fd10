"""
Thin views over raw Bot API update dicts.

Only the fields handlers read are pulled out.
"""
from dataclasses import dataclass, field
from typing import List, Optional


PRIVATE = "private"


@dataclass(frozen=True)
class ReplyTarget:
    message_id: int
    from_id: int = 0
    from_bot: bool = False


@dataclass(frozen=True)
class IncomingMessage:
    chat_id: int
    chat_type: str
    chat_title: str
    message_id: int
    user_id: int
    text: str = ""
    reply_to: Optional[ReplyTarget] = None
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)

    @property
    def is_private(self) -> bool:
        return self.chat_type == PRIVATE


@dataclass(frozen=True)
class CallbackQuery:
    id: str
    data: str
    user_id: int
    chat_id: int
    chat_type: str
    message_id: int

    @property
    def is_private(self) -> bool:
        return self.chat_type == PRIVATE


def _parse_command(message: dict, text: str, bot_username: str):
    entities = message.get("entities") or []
    if not entities:
        return None, []

    first = entities[0]
    if first.get("type") != "bot_command" or first.get("offset") != 0:
        return None, []

    length = first.get("length", 0)
    name = text[1:length]
    if "@" in name:
        name, _, target = name.partition("@")
        # /cmd@OtherBot in a group is not for us
        if bot_username and target.lower() != bot_username.lower():
            return None, []

    return name.lower(), text[length:].split()


def parse_message(update: dict, bot_username: str = "") -> Optional[IncomingMessage]:
    message = update.get("message")
    if not message:
        return None

    chat = message.get("chat") or {}
    sender = message.get("from") or {}
    if "id" not in chat or "id" not in sender:
        return None

    text = message.get("text") or ""
    command, args = _parse_command(message, text, bot_username)

    reply_to = None
    replied = message.get("reply_to_message")
    if replied and "message_id" in replied:
        replied_from = replied.get("from") or {}
        reply_to = ReplyTarget(
            message_id=replied["message_id"],
            from_id=replied_from.get("id", 0),
            from_bot=bool(replied_from.get("is_bot")),
        )

    return IncomingMessage(
        chat_id=chat["id"],
        chat_type=chat.get("type", ""),
        chat_title=chat.get("title") or chat.get("username") or "",
        message_id=message.get("message_id", 0),
        user_id=sender["id"],
        text=text,
        reply_to=reply_to,
        command=command,
        args=args,
    )


def parse_callback_query(update: dict) -> Optional[CallbackQuery]:
    query = update.get("callback_query")
    if not query:
        return None

    message = query.get("message") or {}
    chat = message.get("chat") or {}
    if "id" not in chat:
        return None

    return CallbackQuery(
        id=query.get("id", ""),
        data=query.get("data") or "",
        user_id=(query.get("from") or {}).get("id", 0),
        chat_id=chat["id"],
        chat_type=chat.get("type", ""),
        message_id=message.get("message_id", 0),
    )
