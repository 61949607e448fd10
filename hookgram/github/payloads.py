"""
Typed GitHub webhook payloads.

Each supported X-GitHub-Event value maps to one model class. Models only
declare the fields the bot reads; everything else in the payload is
ignored. Events the bot knows about but does not render specially are
parsed as GenericEvent.
"""
import json
from typing import ClassVar, Dict, List, Optional, Type
from urllib.parse import parse_qs

from pydantic import BaseModel, ConfigDict, PrivateAttr, ValidationError


class WebhookParseError(Exception):
    """Raised when a webhook body cannot be turned into a typed event."""
    pass


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Account(_Model):
    login: str = ""
    id: Optional[int] = None
    html_url: str = ""


class Repository(_Model):
    id: Optional[int] = None
    name: str = ""
    full_name: str = ""
    html_url: str = ""
    owner: Optional[Account] = None
    stargazers_count: int = 0
    forks_count: int = 0

    @property
    def owner_login(self) -> str:
        if self.owner and self.owner.login:
            return self.owner.login
        return self.full_name.split("/", 1)[0] if "/" in self.full_name else ""


class Label(_Model):
    name: str = ""


class CommitAuthor(_Model):
    name: str = ""
    username: Optional[str] = None


class Commit(_Model):
    id: str
    message: str = ""
    url: str = ""
    author: CommitAuthor = CommitAuthor()


class Issue(_Model):
    number: int
    title: str = ""
    body: Optional[str] = None
    html_url: str = ""
    state: str = ""
    user: Optional[Account] = None
    assignees: List[Account] = []
    labels: List[Label] = []
    pull_request: Optional[dict] = None


class Ref(_Model):
    ref: str = ""


class PullRequest(_Model):
    number: int
    title: str = ""
    body: Optional[str] = None
    html_url: str = ""
    state: str = ""
    # Nullable in GitHub's pull_request schema
    merged: Optional[bool] = None
    draft: Optional[bool] = None
    user: Optional[Account] = None
    head: Ref = Ref()
    base: Ref = Ref()
    assignees: List[Account] = []
    requested_reviewers: List[Account] = []
    labels: List[Label] = []


class Comment(_Model):
    id: int
    body: Optional[str] = None
    html_url: str = ""
    user: Optional[Account] = None


class Review(_Model):
    id: int
    state: str = ""
    body: Optional[str] = None
    html_url: str = ""
    user: Optional[Account] = None


class Release(_Model):
    tag_name: str = ""
    name: Optional[str] = None
    html_url: str = ""
    prerelease: bool = False
    draft: bool = False


class WebhookEvent(_Model):
    EVENT: ClassVar[str] = ""

    action: Optional[str] = None
    repository: Optional[Repository] = None
    sender: Optional[Account] = None

    _event_name: str = PrivateAttr(default="")

    @property
    def event_name(self) -> str:
        return self._event_name or self.EVENT

    @property
    def sender_login(self) -> str:
        return self.sender.login if self.sender else ""

    @property
    def repo_full_name(self) -> str:
        return self.repository.full_name if self.repository else ""


class PushEvent(WebhookEvent):
    EVENT: ClassVar[str] = "push"

    ref: str = ""
    compare: str = ""
    created: bool = False
    deleted: bool = False
    forced: bool = False
    commits: List[Commit] = []
    head_commit: Optional[Commit] = None


class PullRequestEvent(WebhookEvent):
    EVENT: ClassVar[str] = "pull_request"

    pull_request: PullRequest


class IssuesEvent(WebhookEvent):
    EVENT: ClassVar[str] = "issues"

    issue: Issue


class IssueCommentEvent(WebhookEvent):
    EVENT: ClassVar[str] = "issue_comment"

    issue: Issue
    comment: Comment


class PullRequestReviewEvent(WebhookEvent):
    EVENT: ClassVar[str] = "pull_request_review"

    review: Review
    pull_request: PullRequest


class PullRequestReviewCommentEvent(WebhookEvent):
    EVENT: ClassVar[str] = "pull_request_review_comment"

    comment: Comment
    pull_request: PullRequest


class RepositoryEvent(WebhookEvent):
    EVENT: ClassVar[str] = "repository"

    changes: Optional[dict] = None


class StarEvent(WebhookEvent):
    EVENT: ClassVar[str] = "star"


class WatchEvent(WebhookEvent):
    EVENT: ClassVar[str] = "watch"


class ForkEvent(WebhookEvent):
    EVENT: ClassVar[str] = "fork"

    forkee: Repository


class ReleaseEvent(WebhookEvent):
    EVENT: ClassVar[str] = "release"

    release: Release


class CreateEvent(WebhookEvent):
    EVENT: ClassVar[str] = "create"

    ref: str = ""
    ref_type: str = ""


class DeleteEvent(WebhookEvent):
    EVENT: ClassVar[str] = "delete"

    ref: str = ""
    ref_type: str = ""


class MemberEvent(WebhookEvent):
    EVENT: ClassVar[str] = "member"

    member: Account


class PingEvent(WebhookEvent):
    EVENT: ClassVar[str] = "ping"

    zen: str = ""
    hook_id: Optional[int] = None


class GenericEvent(WebhookEvent):
    """Any other documented event; rendered as a one-line summary."""
    pass


EVENT_MODELS: Dict[str, Type[WebhookEvent]] = {
    model.EVENT: model
    for model in (
        PushEvent,
        PullRequestEvent,
        IssuesEvent,
        IssueCommentEvent,
        PullRequestReviewEvent,
        PullRequestReviewCommentEvent,
        RepositoryEvent,
        StarEvent,
        WatchEvent,
        ForkEvent,
        ReleaseEvent,
        CreateEvent,
        DeleteEvent,
        MemberEvent,
        PingEvent,
    )
}

GENERIC_EVENTS = frozenset({
    "branch_protection_configuration",
    "branch_protection_rule",
    "check_run",
    "check_suite",
    "commit_comment",
    "custom_property",
    "custom_property_values",
    "dependabot_alert",
    "deploy_key",
    "deployment",
    "deployment_protection_rule",
    "deployment_review",
    "deployment_status",
    "discussion",
    "discussion_comment",
    "github_app_authorization",
    "gollum",
    "installation",
    "installation_repositories",
    "installation_target",
    "label",
    "marketplace_purchase",
    "membership",
    "merge_group",
    "meta",
    "milestone",
    "org_block",
    "organization",
    "package",
    "page_build",
    "personal_access_token_request",
    "projects_v2",
    "projects_v2_item",
    "public",
    "pull_request_review_thread",
    "registry_package",
    "repository_dispatch",
    "repository_import",
    "repository_ruleset",
    "repository_vulnerability_alert",
    "secret_scanning_alert",
    "secret_scanning_alert_location",
    "security_advisory",
    "security_and_analysis",
    "sponsorship",
    "status",
    "team",
    "team_add",
    "user",
    "workflow_dispatch",
    "workflow_job",
    "workflow_run",
})


def _decode_body(body: bytes, content_type: Optional[str]) -> dict:
    if content_type and content_type.split(";")[0].strip() == (
        "application/x-www-form-urlencoded"
    ):
        form = parse_qs(body.decode("utf-8"))
        raw = (form.get("payload") or [""])[0]
    else:
        raw = body

    data = json.loads(raw)
    if not isinstance(data, dict):
        raise WebhookParseError("webhook payload is not a JSON object")
    return data


def parse_event(
    event_type: Optional[str],
    body: bytes,
    content_type: Optional[str] = None,
) -> WebhookEvent:
    """
    Parse a raw webhook body into a typed event.

    Raises WebhookParseError for a missing or unknown event type, a body
    that is not JSON, or a payload that does not match the event schema.
    """
    if not event_type:
        raise WebhookParseError("missing event type")

    model = EVENT_MODELS.get(event_type)
    if model is None and event_type not in GENERIC_EVENTS:
        raise WebhookParseError(f"unknown event type: {event_type}")

    try:
        data = _decode_body(body, content_type)
    except (UnicodeDecodeError, ValueError) as exc:
        raise WebhookParseError(f"invalid {event_type} payload: {exc}") from exc

    try:
        event = (model or GenericEvent).model_validate(data)
    except ValidationError as exc:
        raise WebhookParseError(f"invalid {event_type} payload: {exc}") from exc

    if model is None:
        event._event_name = event_type

    return event
