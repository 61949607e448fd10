from hookgram.callbacks.handlers import handle_callback
from hookgram.commands.handlers import COMMANDS
from hookgram.commands.reply import handle_reply
from hookgram.db import store
from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.telegram.updates import parse_callback_query, parse_message


logger = get_logger("hookgram.telegram.router")


class UpdateRouter:
    """Dispatches one Bot API update to the matching handler."""

    def __init__(self, services: Services):
        self.services = services

    async def route(self, update: dict):
        try:
            await self._route(update)
        except Exception:
            # One bad update must not stop the poller
            logger.exception("Failed to handle update %s", update.get("update_id"))

    async def _route(self, update: dict):
        services = self.services

        query = parse_callback_query(update)
        if query is not None:
            self._remember_chat(query.chat_id, query.chat_type, "")
            await handle_callback(services, query)
            return

        msg = parse_message(update, services.bot_username)
        if msg is None:
            return

        self._remember_chat(msg.chat_id, msg.chat_type, msg.chat_title)

        if msg.command:
            handler = COMMANDS.get(msg.command)
            if handler is None:
                logger.debug("Unknown command /%s", msg.command)
                return
            logger.info("Command /%s from user %s in chat %s", msg.command, msg.user_id, msg.chat_id)
            await handler(services, msg)
            return

        if msg.reply_to is not None and msg.text:
            await handle_reply(services, msg)

    @staticmethod
    def _remember_chat(chat_id: int, chat_type: str, title: str):
        try:
            if title or not store.get_chat(chat_id):
                store.upsert_chat(chat_id, chat_type, title)
        except Exception:
            # Routing goes on without the chat record
            logger.warning("Chat %s not recorded", chat_id)
