from dataclasses import dataclass
from typing import Optional


# Entity kinds a notification can be correlated with
ISSUE = "issue"
PR = "pr"
ISSUE_COMMENT = "issue_comment"
PR_REVIEW = "pr_review"
PR_REVIEW_COMMENT = "pr_review_comment"

ENTITY_TYPES = frozenset({ISSUE, PR, ISSUE_COMMENT, PR_REVIEW, PR_REVIEW_COMMENT})


@dataclass(frozen=True)
class MessageContext:
    """GitHub entity a sent Telegram message refers to."""

    owner: str
    repo: str
    number: int
    type: str
    comment_id: Optional[int] = None

    def __post_init__(self):
        if self.type not in ENTITY_TYPES:
            raise ValueError(f"unknown entity type: {self.type}")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def is_pull_request(self) -> bool:
        return self.type in (PR, PR_REVIEW, PR_REVIEW_COMMENT)


@dataclass(frozen=True)
class PRActionContext:
    """Pull request an inline Approve/Close button acts on."""

    owner: str
    repo: str
    number: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
