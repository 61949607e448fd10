import re
from typing import Optional, Tuple

from hookgram.db import store
from hookgram.db.models import RepoLink
from hookgram.github.api import GitHubAPIError, GitHubClient
from hookgram.github.formatter import escape
from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.telegram.keyboards import Keyboard, callback_button_or_none


logger = get_logger("hookgram.commands.repos")

REPO_PICKER_PAGE_SIZE = 5

_FULL_NAME_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")
_GITHUB_PREFIXES = ("https://github.com/", "http://github.com/", "github.com/")


def split_full_name(value: str) -> Optional[Tuple[str, str]]:
    """Accept `owner/repo` or a github.com URL; None when it is neither."""
    value = value.strip()
    for prefix in _GITHUB_PREFIXES:
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break

    value = value.rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    m = _FULL_NAME_RE.match(value)
    if not m:
        return None
    return m.group(1), m.group(2)


async def link_repository(
    services: Services,
    client: GitHubClient,
    chat_id: int,
    owner: str,
    name: str,
) -> RepoLink:
    """
    Create a webhook pointing at this chat and remember the link.

    The hook subscribes to every catalog event. If the link cannot be
    stored the hook is removed again.
    """
    hook = await client.create_hook(
        owner,
        name,
        services.webhook_url(chat_id),
        services.webhook_secret,
        services.catalog.names,
    )
    link = RepoLink(repo_full_name=f"{owner}/{name}", webhook_id=hook["id"])

    try:
        store.add_repo_link(chat_id, link)
    except Exception:
        try:
            await client.delete_hook(owner, name, link.webhook_id)
        except GitHubAPIError:
            logger.warning("Orphaned hook %s left on %s", link.webhook_id, link.repo_full_name)
        raise

    logger.info("Linked %s to chat %s (hook %s)", link.repo_full_name, chat_id, link.webhook_id)
    return link


async def repo_picker(
    services: Services,
    client: GitHubClient,
    page: int,
) -> Tuple[str, Keyboard]:
    repos, pages = await client.list_user_repos(page, per_page=REPO_PICKER_PAGE_SIZE)

    # Past the last page GitHub answers with an empty list
    if not repos and page > 1:
        page = 1
        repos, pages = await client.list_user_repos(page, per_page=REPO_PICKER_PAGE_SIZE)

    if not repos:
        return "No repositories found on your GitHub account.", []

    keyboard: Keyboard = []
    for repo in repos:
        button = callback_button_or_none(
            repo.get("full_name", str(repo["id"])),
            lambda: services.callbacks.add_repo_id(repo["id"]),
        )
        if button:
            keyboard.append([button])

    nav = []
    if pages.prev:
        nav.append(callback_button_or_none(
            "⬅️ Prev", lambda: services.callbacks.add_repo_page(pages.prev)
        ))
    if pages.next:
        nav.append(callback_button_or_none(
            "Next ➡️", lambda: services.callbacks.add_repo_page(pages.next)
        ))
    nav = [b for b in nav if b]
    if nav:
        keyboard.append(nav)

    total = f" of {pages.last}" if pages.last else ""
    text = f"<b>Select a repository to link</b> (page {page}{total}):"
    return text, keyboard


def linked_message(link: RepoLink) -> str:
    return (
        f"✅ Linked <b>{escape(link.repo_full_name)}</b>.\n"
        "Use /settings to choose which events are delivered."
    )
