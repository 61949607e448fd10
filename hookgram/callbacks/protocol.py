"""
Callback data for inline keyboards.

Telegram caps callback_data at 64 bytes, so payloads are short
colon-separated strings: ``<namespace>:<action>[:<arg>]*``.

    c:ls                        list linked repositories
    c:r:<repo>                  repository menu
    c:presets:<repo>:<mode>     apply a preset (push / all)
    c:iev:<repo>:<page>         individual events page
    c:ep:<repo>:<page>          same, older spelling
    c:te:<repo>:<short>[:<page>]  toggle one event
    c:ar:pg:<page>              add-repo picker page
    c:ar:id:<repo_id>           add repository by id
    act:<approve|close>:<id>    pull request action

Repository full names never contain ':' so they can sit at a fixed
position. Decoding never raises: anything unrecognised gives None.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple


MAX_CALLBACK_BYTES = 64

CONFIG_NAMESPACE = "c"
ACTION_NAMESPACE = "act"

# Decoded action names
LIST_REPOS = "list_repos"
REPO_MENU = "repo_menu"
PRESET = "preset"
EVENT_PAGE = "event_page"
TOGGLE_EVENT = "toggle_event"
ADD_REPO_PAGE = "add_repo_page"
ADD_REPO_ID = "add_repo_id"
PR_APPROVE = "approve"
PR_CLOSE = "close"

PRESET_MODES = ("push", "all")


@dataclass(frozen=True)
class SupportedEvent:
    name: str
    label: str
    short: str


DEFAULT_EVENTS: Tuple[SupportedEvent, ...] = (
    SupportedEvent("push", "Code", "p"),
    SupportedEvent("issues", "Issues", "i"),
    SupportedEvent("pull_request", "Pull requests", "pr"),
    SupportedEvent("gollum", "Wikis", "g"),
    SupportedEvent("repository", "Settings", "rep"),
    SupportedEvent("meta", "Webhooks and services", "mt"),
    SupportedEvent("deploy_key", "Deploy keys", "dk"),
    SupportedEvent("member", "Collaboration invites", "m"),
    SupportedEvent("fork", "Forks", "f"),
    SupportedEvent("star", "Stars", "s"),
)


class EventCatalog:
    """Immutable event name <-> short code table."""

    def __init__(self, events: Iterable[SupportedEvent] = DEFAULT_EVENTS):
        self.events: Tuple[SupportedEvent, ...] = tuple(events)

        to_short = {e.name: e.short for e in self.events}
        to_name = {e.short: e.name for e in self.events}
        if len(to_short) != len(self.events) or len(to_name) != len(self.events):
            raise ValueError("event names and short codes must be unique")

        self._to_short: Mapping[str, str] = MappingProxyType(to_short)
        self._to_name: Mapping[str, str] = MappingProxyType(to_name)

    @property
    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def short_for(self, name: str) -> str:
        return self._to_short.get(name, name)

    def name_for(self, short: str) -> str:
        # Unknown codes are taken as full event names
        return self._to_name.get(short, short)


@dataclass(frozen=True)
class CallbackAction:
    kind: str
    repo: Optional[str] = None
    page: int = 1
    event: Optional[str] = None
    mode: Optional[str] = None
    repo_id: Optional[int] = None
    token: Optional[str] = None


def parse_page(value: Optional[str]) -> int:
    """Page numbers that are missing, non-numeric or < 1 become 1."""
    if value is None or not value.isascii() or not value.isdigit():
        return 1
    page = int(value)
    return page if page >= 1 else 1


class CallbackCodec:
    def __init__(self, catalog: EventCatalog):
        self.catalog = catalog

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @staticmethod
    def _join(*parts) -> str:
        data = ":".join(str(p) for p in parts)
        if len(data.encode()) > MAX_CALLBACK_BYTES:
            raise ValueError(f"callback data exceeds {MAX_CALLBACK_BYTES} bytes: {data}")
        return data

    def list_repos(self) -> str:
        return self._join(CONFIG_NAMESPACE, "ls")

    def repo_menu(self, repo: str) -> str:
        return self._join(CONFIG_NAMESPACE, "r", repo)

    def preset(self, repo: str, mode: str) -> str:
        return self._join(CONFIG_NAMESPACE, "presets", repo, mode)

    def event_page(self, repo: str, page: int) -> str:
        return self._join(CONFIG_NAMESPACE, "iev", repo, page)

    def toggle_event(self, repo: str, event: str, page: int) -> str:
        return self._join(
            CONFIG_NAMESPACE, "te", repo, self.catalog.short_for(event), page
        )

    def add_repo_page(self, page: int) -> str:
        return self._join(CONFIG_NAMESPACE, "ar", "pg", page)

    def add_repo_id(self, repo_id: int) -> str:
        return self._join(CONFIG_NAMESPACE, "ar", "id", repo_id)

    def pr_action(self, action: str, token: str) -> str:
        return self._join(ACTION_NAMESPACE, action, token)

    # ------------------------------------------------------------------
    # Decoder
    # ------------------------------------------------------------------

    def decode(self, data: Optional[str]) -> Optional[CallbackAction]:
        if not data:
            return None

        parts = data.split(":")
        if len(parts) < 2:
            return None

        if parts[0] == CONFIG_NAMESPACE:
            return self._decode_config(parts)
        if parts[0] == ACTION_NAMESPACE:
            return self._decode_pr_action(parts)
        return None

    def _decode_config(self, parts: List[str]) -> Optional[CallbackAction]:
        action = parts[1]
        n = len(parts)

        if action == "ls":
            return CallbackAction(LIST_REPOS)

        if action == "ar":
            if n != 4:
                return None
            if parts[2] == "pg":
                return CallbackAction(ADD_REPO_PAGE, page=parse_page(parts[3]))
            if parts[2] == "id" and parts[3].isascii() and parts[3].isdigit():
                return CallbackAction(ADD_REPO_ID, repo_id=int(parts[3]))
            return None

        if n < 3 or not parts[2]:
            return None
        repo = parts[2]

        if action == "r" and n == 3:
            return CallbackAction(REPO_MENU, repo=repo)

        if action == "presets" and n == 4 and parts[3] in PRESET_MODES:
            return CallbackAction(PRESET, repo=repo, mode=parts[3])

        if action in ("iev", "ep") and n == 4:
            return CallbackAction(EVENT_PAGE, repo=repo, page=parse_page(parts[3]))

        if action == "te" and n in (4, 5) and parts[3]:
            return CallbackAction(
                TOGGLE_EVENT,
                repo=repo,
                event=self.catalog.name_for(parts[3]),
                page=parse_page(parts[4] if n == 5 else None),
            )

        return None

    def _decode_pr_action(self, parts: List[str]) -> Optional[CallbackAction]:
        if len(parts) != 3 or not parts[2]:
            return None
        if parts[1] not in (PR_APPROVE, PR_CLOSE):
            return None
        return CallbackAction(parts[1], token=parts[2])
