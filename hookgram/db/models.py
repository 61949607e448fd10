from dataclasses import dataclass, field
from typing import List


@dataclass
class User:
    """Telegram user linked to a GitHub account."""

    telegram_id: int
    github_user_id: int = 0
    github_username: str = ""
    encrypted_token: str = ""
    scopes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RepoLink:
    repo_full_name: str
    webhook_id: int = 0

    @property
    def owner(self) -> str:
        return self.repo_full_name.split("/", 1)[0]

    @property
    def name(self) -> str:
        parts = self.repo_full_name.split("/", 1)
        return parts[1] if len(parts) == 2 else ""


@dataclass
class Chat:
    chat_id: int
    chat_type: str = ""
    title: str = ""
    links: List[RepoLink] = field(default_factory=list)
