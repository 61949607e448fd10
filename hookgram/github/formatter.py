"""
Render typed webhook events as Telegram HTML messages.

format_event() is pure: it returns (text, keyboard) and never talks to
GitHub or Telegram. An empty text means the event should not be sent.
"""
import html
import re
from functools import singledispatch
from typing import Optional, Tuple

from hookgram.github.payloads import (
    Account,
    CreateEvent,
    DeleteEvent,
    ForkEvent,
    IssueCommentEvent,
    IssuesEvent,
    MemberEvent,
    PingEvent,
    PullRequestEvent,
    PullRequestReviewCommentEvent,
    PullRequestReviewEvent,
    PushEvent,
    ReleaseEvent,
    RepositoryEvent,
    StarEvent,
    WatchEvent,
    WebhookEvent,
)
from hookgram.telegram.keyboards import Keyboard, url_button


Rendered = Tuple[str, Optional[Keyboard]]

MAX_MESSAGE_LENGTH = 4000
MAX_BODY_LENGTH = 600

_COMMENT_EMOJI = {"created": "💬", "edited": "✏️", "deleted": "🗑️"}

_REVIEW_EMOJI = {
    "approved": "✅",
    "changes_requested": "✏️",
    "commented": "💬",
    "dismissed": "❌",
}


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------

def escape(text: Optional[str]) -> str:
    return html.escape(text or "", quote=False)


def link(text: str, url: str) -> str:
    if not url:
        return escape(text)
    return f'<a href="{html.escape(url)}">{escape(text)}</a>'


def user_link(login: str) -> str:
    if not login:
        return "someone"
    return link(login, f"https://github.com/{login}")


def repo_link(full_name: str) -> str:
    if not full_name:
        return "unknown repository"
    return link(full_name, f"https://github.com/{full_name}")


def quote_body(body: Optional[str], limit: int = MAX_BODY_LENGTH) -> str:
    text = (body or "").strip()
    if not text:
        return ""
    if len(text) > limit:
        text = text[:limit].rstrip() + "…"
    return f"<blockquote>{escape(text)}</blockquote>"


def logins(accounts) -> str:
    return ", ".join(escape(a.login) for a in accounts if a.login)


def with_button(text: str, label: str, url: str) -> Rendered:
    if not url:
        return text, None
    return text, [[url_button(label, url)]]


def normalize_message(text: str) -> str:
    """Trim trailing blanks per line and collapse 3+ newlines into 2."""
    if not text:
        return text

    lines = [line.rstrip(" \t") for line in text.split("\n")]
    out = "\n".join(lines)
    out = re.sub(r"\n{3,}", "\n\n", out)
    return out.strip()


# ---------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------

@singledispatch
def format_event(event: WebhookEvent) -> Rendered:
    action = f" {escape(event.action)}" if event.action else ""
    name = escape(event.event_name.replace("_", " "))

    text = f"🔔 <b>{name}</b>{action}"
    if event.repo_full_name:
        text += f"\n<b>Repository:</b> {repo_link(event.repo_full_name)}"
    if event.sender_login:
        text += f"\n<b>By:</b> {user_link(event.sender_login)}"

    url = event.repository.html_url if event.repository else ""
    return with_button(text, "View Repository", url)


@format_event.register
def _(event: PushEvent) -> Rendered:
    commits = list(event.commits)
    if not commits and event.head_commit is not None:
        commits = [event.head_commit]

    if not commits:
        return "", None

    repo = event.repository.name if event.repository else ""
    repo_url = event.repository.html_url if event.repository else ""
    branch = event.ref.removeprefix("refs/heads/")
    plural = "s" if len(commits) > 1 else ""

    text = (
        f"🔨 <b>{len(commits)} new commit{plural} to</b> "
        f"<code>{escape(repo)}:{escape(branch)}</code>\n\n"
    )

    if event.created:
        text += "🌱 <i>New branch created</i>\n"
    elif event.deleted:
        text += "🗑️ <i>Branch deleted</i>\n"
    elif event.forced:
        text += "⚠️ <i>Force pushed</i>\n"

    for commit in commits:
        commit_url = commit.url or f"{repo_url}/commit/{commit.id}"
        author = (
            user_link(commit.author.username)
            if commit.author.username
            else escape(commit.author.name)
        )
        message = escape(commit.message.split("\n", 1)[0])
        text += f"- {link(commit.id[:7], commit_url)}: {message} by {author}\n"

    if len(text) > MAX_MESSAGE_LENGTH:
        text = (
            f"🔨 <b>{len(commits)} new commit(s) to</b> "
            f"<code>{escape(repo)}:{escape(branch)}</code>\n\n"
            "⚠️ <i>Too many commits to display, check the repository for details.</i>\n"
        )

    if len(commits) == 1:
        return with_button(
            text, "View Commit", commits[0].url or f"{repo_url}/commit/{commits[0].id}"
        )
    return with_button(text, "View Commits", event.compare)


@format_event.register
def _(event: PullRequestEvent) -> Rendered:
    pr = event.pull_request
    action = event.action or ""

    text = (
        f"🚀 <b>PR {escape(action.title())} #{pr.number}: {escape(pr.title)}</b>\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)} | <b>State:</b> {escape(pr.state)}\n"
    )

    if action == "opened":
        text += quote_body(pr.body)
    elif action == "closed":
        text += "✅ Merged\n" if pr.merged else "❌ Closed without merging\n"
    elif action == "reopened":
        text += "🔄 Reopened\n"
    elif action == "edited":
        text += "✏️ Edited\n" + quote_body(pr.body)
    elif action == "assigned":
        text += f"<b>Assigned:</b> {logins(pr.assignees)}\n"
    elif action == "review_requested":
        text += f"<b>Reviewers:</b> {logins(pr.requested_reviewers)}\n"
    elif action == "labeled":
        text += f"<b>Labels:</b> {', '.join(escape(l.name) for l in pr.labels)}\n"
    elif action == "synchronize":
        text += "🔄 New commits pushed\n"

    return with_button(text, "View PR", pr.html_url)


@format_event.register
def _(event: IssuesEvent) -> Rendered:
    issue = event.issue
    action = event.action or ""

    text = (
        f"📌 <b>{escape(action.title())} issue #{issue.number}</b>\n"
        f"<b>Title:</b> {escape(issue.title)}\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )

    if action in ("opened", "edited"):
        text += quote_body(issue.body)
    elif action == "reopened":
        text += "<i>Issue reopened</i>\n"
    elif action == "assigned":
        text += f"<b>Assigned to:</b> {logins(issue.assignees)}\n"
    elif action == "labeled":
        text += f"<b>Labels:</b> {', '.join(escape(l.name) for l in issue.labels)}\n"

    return with_button(text, "View Issue", issue.html_url)


@format_event.register
def _(event: IssueCommentEvent) -> Rendered:
    action = event.action or ""
    issue = event.issue
    emoji = _COMMENT_EMOJI.get(action, "⚠️")

    text = (
        f"{emoji} <b>{user_link(event.sender_login)} {escape(action)} comment on</b> "
        f"{link(f'{event.repo_full_name}#{issue.number}', issue.html_url)}\n\n"
        f"<b>Title:</b> {escape(issue.title)}\n"
    )

    if action in ("created", "edited"):
        text += quote_body(event.comment.body)

    return with_button(text, "View Comment", event.comment.html_url)


@format_event.register
def _(event: PullRequestReviewEvent) -> Rendered:
    review = event.review
    pr = event.pull_request
    emoji = _REVIEW_EMOJI.get(review.state, "🔍")

    text = (
        f"{emoji} <b>PR Review {escape(event.action)}</b>\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>PR:</b> {link(f'{pr.title} #{pr.number}', pr.html_url)}\n"
        f"<b>State:</b> {escape(review.state)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )
    text += quote_body(review.body)

    return with_button(text, "View Review", review.html_url)


@format_event.register
def _(event: PullRequestReviewCommentEvent) -> Rendered:
    action = event.action or ""
    pr = event.pull_request
    emoji = _COMMENT_EMOJI.get(action, "⚠️")

    text = (
        f"{emoji} <b>PR Review Comment {escape(action)}</b>\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>PR:</b> {link(f'{pr.title} #{pr.number}', pr.html_url)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )
    text += quote_body(event.comment.body)

    return with_button(text, "View Comment", event.comment.html_url)


@format_event.register
def _(event: RepositoryEvent) -> Rendered:
    action = event.action or ""
    text = (
        f"📦 <b>Repository {escape(action)}</b>\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )

    if action == "renamed" and event.changes:
        old_name = ((event.changes.get("repository") or {}).get("name") or {}).get("from")
        if old_name:
            text += f"<b>Previous name:</b> {escape(old_name)}\n"

    url = event.repository.html_url if event.repository else ""
    return with_button(text, "View Repository", url)


@format_event.register
def _(event: StarEvent) -> Rendered:
    if event.action == "created":
        emoji, verb = "⭐️", "starred"
    elif event.action == "deleted":
        emoji, verb = "❌", "unstarred"
    else:
        return "", None

    repo = event.repository
    text = (
        f"{emoji} {user_link(event.sender_login)} {verb} "
        f"{repo_link(event.repo_full_name)}\n\n"
        f"✨ Stars: {repo.stargazers_count if repo else 0} | "
        f"🍴 Forks: {repo.forks_count if repo else 0}"
    )
    return with_button(text, "View Repository", repo.html_url if repo else "")


@format_event.register
def _(event: WatchEvent) -> Rendered:
    repo = event.repository
    text = (
        f"👀 {user_link(event.sender_login)} started watching "
        f"{repo_link(event.repo_full_name)}\n\n"
        f"✨ Stars: {repo.stargazers_count if repo else 0}"
    )
    return with_button(text, "View Repository", repo.html_url if repo else "")


@format_event.register
def _(event: ForkEvent) -> Rendered:
    text = (
        f"🍴 {user_link(event.sender_login)} forked "
        f"{repo_link(event.repo_full_name)}\n"
        f"<b>Fork:</b> {repo_link(event.forkee.full_name)}\n"
    )
    return with_button(text, "View Fork", event.forkee.html_url)


@format_event.register
def _(event: ReleaseEvent) -> Rendered:
    release = event.release
    kind = "Pre-release" if release.prerelease else "Release"

    text = (
        f"🏷 <b>{kind} {escape(event.action)}</b>\n\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>Tag:</b> <code>{escape(release.tag_name)}</code>\n"
    )
    if release.name:
        text += f"<b>Name:</b> {escape(release.name)}\n"
    text += f"<b>By:</b> {user_link(event.sender_login)}\n"

    return with_button(text, "View Release", release.html_url)


@format_event.register
def _(event: CreateEvent) -> Rendered:
    text = (
        f"🌱 <b>New {escape(event.ref_type)} created</b>\n\n"
        f"<b>Name:</b> <code>{escape(event.ref)}</code>\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )
    url = event.repository.html_url if event.repository else ""
    return with_button(text, "View Repository", url)


@format_event.register
def _(event: DeleteEvent) -> Rendered:
    text = (
        f"🗑️ <b>{escape(event.ref_type.capitalize())} deleted</b>\n\n"
        f"<b>Name:</b> <code>{escape(event.ref)}</code>\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )
    url = event.repository.html_url if event.repository else ""
    return with_button(text, "View Repository", url)


@format_event.register
def _(event: MemberEvent) -> Rendered:
    member: Account = event.member
    text = (
        f"👥 <b>Collaborator {escape(event.action)}</b>\n\n"
        f"<b>Member:</b> {user_link(member.login)}\n"
        f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
        f"<b>By:</b> {user_link(event.sender_login)}\n"
    )
    return with_button(text, "View Member", member.html_url)


@format_event.register
def _(event: PingEvent) -> Rendered:
    text = "🏓 <b>Webhook Ping Received</b>\n\n"
    if event.zen:
        text += f"<i>{escape(event.zen)}</i>\n"
    if event.repo_full_name:
        text += f"<b>Repository:</b> {repo_link(event.repo_full_name)}\n"
    if event.hook_id:
        text += f"<b>Hook ID:</b> <code>{event.hook_id}</code>\n"
    return text, None
