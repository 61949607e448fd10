import asyncio
from dataclasses import dataclass, field
from typing import Callable, Coroutine, Optional, Set

from hookgram import settings
from hookgram.cache.state import CacheState
from hookgram.callbacks.protocol import CallbackCodec, EventCatalog
from hookgram.correlation import CorrelationManager
from hookgram.github.api import GitHubClient
from hookgram.github.oauth import OAuthClient
from hookgram.logger import get_logger
from hookgram.security.cipher import AESGCMCipher
from hookgram.security.tenant_token import TenantTokenCodec
from hookgram.telegram.client import TelegramClient


logger = get_logger("hookgram.services")


@dataclass
class Services:
    """Everything request and update handlers share."""

    telegram: TelegramClient
    cipher: AESGCMCipher
    caches: CacheState
    oauth: OAuthClient
    webhook_secret: str
    public_url: str
    catalog: EventCatalog = field(default_factory=EventCatalog)
    github_factory: Callable[[str], GitHubClient] = GitHubClient
    reload_cooldown: float = settings.RELOAD_COOLDOWN_MINUTES * 60
    oauth_state_ttl: float = settings.OAUTH_STATE_TTL_MINUTES * 60

    tenant_tokens: TenantTokenCodec = field(init=False)
    correlation: CorrelationManager = field(init=False)
    callbacks: CallbackCodec = field(init=False)
    bot_username: str = field(init=False, default="")
    bot_user_id: int = field(init=False, default=0)
    background_tasks: Set[asyncio.Task] = field(init=False, default_factory=set)

    def __post_init__(self):
        self.tenant_tokens = TenantTokenCodec(self.cipher)
        self.correlation = CorrelationManager(
            self.caches.message_contexts,
            self.caches.pr_actions,
        )
        self.callbacks = CallbackCodec(self.catalog)

    def github_for(self, token: str) -> GitHubClient:
        return self.github_factory(token)

    def webhook_url(self, chat_id: int) -> str:
        return f"{self.public_url}/webhook/{self.tenant_tokens.encode(chat_id)}"

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """
        Run `coro` in the background without awaiting it.

        The task is referenced until it finishes so it is not collected
        mid-flight.
        """
        task = asyncio.create_task(coro)
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task


def build_services(telegram: Optional[TelegramClient] = None) -> Services:
    """Wire services from environment settings."""
    return Services(
        telegram=telegram or TelegramClient(settings.TELEGRAM_TOKEN),
        cipher=AESGCMCipher(settings.ENCRYPTION_KEY),
        caches=CacheState(),
        oauth=OAuthClient(
            settings.GITHUB_CLIENT_ID,
            settings.GITHUB_CLIENT_SECRET,
            f"{settings.PUBLIC_URL}/oauth/callback",
        ),
        webhook_secret=settings.GITHUB_WEBHOOK_SECRET,
        public_url=settings.PUBLIC_URL,
    )
