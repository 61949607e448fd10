"""
Settings screens shown by /settings and navigated with inline buttons.
"""
import math
from typing import Iterable, List, Set, Tuple

from hookgram.db.models import RepoLink
from hookgram.github.formatter import escape
from hookgram.services import Services
from hookgram.telegram.keyboards import (
    Keyboard,
    callback_button_or_none,
    chunked,
    url_button,
)


EVENTS_PER_PAGE = 6
WILDCARD = "*"

Screen = Tuple[str, Keyboard]


def _row(*buttons) -> list:
    return [b for b in buttons if b]


def enabled_events(services: Services, hook_events: Iterable[str]) -> Set[str]:
    """Expand GitHub's "*" subscription into the catalog's event names."""
    events = set(hook_events or [])
    if WILDCARD in events:
        events.discard(WILDCARD)
        events.update(services.catalog.names)
    return events


def toggled(services: Services, hook_events: Iterable[str], event: str) -> List[str]:
    events = enabled_events(services, hook_events)
    if event in events:
        events.discard(event)
    else:
        events.add(event)
    return sorted(events)


def hook_settings_url(link: RepoLink) -> str:
    return f"https://github.com/{link.repo_full_name}/settings/hooks/{link.webhook_id}"


def repo_list(services: Services, links: List[RepoLink]) -> Screen:
    cb = services.callbacks
    keyboard: Keyboard = []

    for link in links:
        button = callback_button_or_none(
            f"📦 {link.repo_full_name}", lambda: cb.repo_menu(link.repo_full_name)
        )
        if button:
            keyboard.append([button])

    keyboard.append(_row(callback_button_or_none("➕ Add repository", lambda: cb.add_repo_page(1))))

    if not links:
        return "No repositories are linked to this chat yet.", keyboard
    return "<b>Linked repositories</b>\nPick one to configure its notifications:", keyboard


def repo_menu(services: Services, link: RepoLink) -> Screen:
    cb = services.callbacks
    repo = link.repo_full_name

    keyboard = [
        _row(
            callback_button_or_none("📦 Push only", lambda: cb.preset(repo, "push")),
            callback_button_or_none("🌐 All events", lambda: cb.preset(repo, "all")),
        ),
        _row(callback_button_or_none("⚙️ Individual events", lambda: cb.event_page(repo, 1))),
        _row(callback_button_or_none("⬅️ Back", cb.list_repos)),
    ]
    text = f"<b>{escape(repo)}</b>\nChoose which events reach this chat:"
    return text, [row for row in keyboard if row]


def event_page(services: Services, link: RepoLink, enabled: Set[str], page: int) -> Screen:
    cb = services.callbacks
    repo = link.repo_full_name
    events = services.catalog.events

    pages = max(1, math.ceil(len(events) / EVENTS_PER_PAGE))
    if page < 1 or page > pages:
        page = 1
    start = (page - 1) * EVENTS_PER_PAGE

    buttons = []
    for event in events[start:start + EVENTS_PER_PAGE]:
        mark = "✅" if event.name in enabled else "❌"
        button = callback_button_or_none(
            f"{mark} {event.label}",
            lambda: cb.toggle_event(repo, event.name, page),
        )
        if button:
            buttons.append(button)

    keyboard = chunked(buttons, 2)

    nav = _row(
        callback_button_or_none("⬅️ Prev", lambda: cb.event_page(repo, page - 1)) if page > 1 else None,
        callback_button_or_none("Next ➡️", lambda: cb.event_page(repo, page + 1)) if page < pages else None,
    )
    if nav:
        keyboard.append(nav)

    keyboard.append([url_button("🔧 Edit more on GitHub", hook_settings_url(link))])
    keyboard.append(_row(callback_button_or_none("⬅️ Back", lambda: cb.repo_menu(repo))))

    text = f"<b>{escape(repo)}</b> events (page {page}/{pages})\nTap an event to toggle it:"
    return text, keyboard
