import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet

from hookgram.cache.ttl import TTLCache
from hookgram.models import MessageContext, PRActionContext


@dataclass
class CacheState:
    """
    The five short-lived tables the bot keeps in memory.

    Each table is its own TTLCache so keys of one space can never be
    read through another.
    """

    clock: Callable[[], float] = time.monotonic

    # "chat_id:message_id" -> entity the notification was about
    message_contexts: TTLCache[str, MessageContext] = field(init=False)
    # random action id -> pull request behind an inline button
    pr_actions: TTLCache[str, PRActionContext] = field(init=False)
    # OAuth state nonce -> telegram user id that started /connect
    oauth_states: TTLCache[str, int] = field(init=False)
    # chat id -> ids of the chat's administrators
    chat_admins: TTLCache[int, FrozenSet[int]] = field(init=False)
    # chat id -> clock reading at which /reload is allowed again
    reload_limits: TTLCache[int, float] = field(init=False)

    def __post_init__(self):
        self.message_contexts = TTLCache(self.clock)
        self.pr_actions = TTLCache(self.clock)
        self.oauth_states = TTLCache(self.clock)
        self.chat_admins = TTLCache(self.clock)
        self.reload_limits = TTLCache(self.clock)

    def tables(self) -> dict:
        return {
            "message_contexts": self.message_contexts,
            "pr_actions": self.pr_actions,
            "oauth_states": self.oauth_states,
            "chat_admins": self.chat_admins,
            "reload_limits": self.reload_limits,
        }

    def cleanup(self) -> dict:
        """Run cleanup on every table and report evictions per table."""
        return {name: table.cleanup() for name, table in self.tables().items()}
