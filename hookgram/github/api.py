from dataclasses import dataclass
from typing import Any, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import httpx

from hookgram.logger import get_logger


GITHUB_API = "https://api.github.com"

logger = get_logger("hookgram.github.api")


class GitHubAPIError(Exception):
    """
    Raised when GitHub rejects a request made with a user's token.
    """

    def __init__(self, status_code: int, message: str, endpoint: str = ""):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint

    @property
    def is_auth_error(self) -> bool:
        """Token revoked, expired or lacking scope."""
        return self.status_code in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status_code in (404, 410)


@dataclass(frozen=True)
class PageLinks:
    prev: Optional[int] = None
    next: Optional[int] = None
    last: Optional[int] = None


def _page_from_url(url: Optional[str]) -> Optional[int]:
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("page")
    if not values or not values[0].isdigit():
        return None
    return int(values[0])


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message") or response.reason_phrase
    except ValueError:
        return response.reason_phrase


class GitHubClient:
    """REST client acting as one GitHub user (OAuth token)."""

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._base_url = base_url
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _send(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{endpoint}"

        async with httpx.AsyncClient(
            follow_redirects=True,
            transport=self._transport,
            timeout=httpx.Timeout(15.0),
        ) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(),
                    json=json,
                    params=params,
                )
            except httpx.HTTPError as exc:
                logger.warning("GitHub request failed (%s %s): %s", method, endpoint, exc)
                raise GitHubAPIError(0, str(exc), endpoint) from exc

        status = response.status_code

        if status in (401, 403):
            logger.warning("Access denied (%s): %s", status, endpoint)
        elif status >= 400:
            logger.warning("GitHub API error %s for %s", status, endpoint)

        if status >= 400:
            raise GitHubAPIError(status, _error_message(response), endpoint)

        return response

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        response = await self._send(method, endpoint, json=json, params=params)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError:
            logger.exception("Failed to decode JSON response from %s", endpoint)
            raise

    # =========================================================
    # Users and repositories
    # =========================================================

    async def get_authenticated_user(self) -> dict:
        return await self._request("GET", "/user")

    async def get_repo(self, owner: str, repo: str) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}")

    async def get_repo_by_id(self, repo_id: int) -> dict:
        return await self._request("GET", f"/repositories/{repo_id}")

    async def list_user_repos(
        self,
        page: int = 1,
        per_page: int = 5,
    ) -> Tuple[List[dict], PageLinks]:
        response = await self._send(
            "GET",
            "/user/repos",
            params={
                "sort": "updated",
                "direction": "desc",
                "per_page": per_page,
                "page": page,
            },
        )
        links = response.links
        pages = PageLinks(
            prev=_page_from_url(links.get("prev", {}).get("url")),
            next=_page_from_url(links.get("next", {}).get("url")),
            last=_page_from_url(links.get("last", {}).get("url")),
        )
        return response.json(), pages

    # =========================================================
    # Webhooks
    # =========================================================

    async def create_hook(
        self,
        owner: str,
        repo: str,
        url: str,
        secret: str,
        events: List[str],
    ) -> dict:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/hooks",
            json={
                "name": "web",
                "active": True,
                "events": events,
                "config": {
                    "url": url,
                    "content_type": "json",
                    "secret": secret,
                },
            },
        )

    async def get_hook(self, owner: str, repo: str, hook_id: int) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}/hooks/{hook_id}")

    async def set_hook_events(
        self,
        owner: str,
        repo: str,
        hook_id: int,
        events: List[str],
    ) -> dict:
        return await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/hooks/{hook_id}",
            json={"events": events},
        )

    async def delete_hook(self, owner: str, repo: str, hook_id: int) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}/hooks/{hook_id}")

    # =========================================================
    # Issues and pull requests
    # =========================================================

    async def approve_pull_request(self, owner: str, repo: str, number: int) -> dict:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/reviews",
            json={"event": "APPROVE"},
        )

    async def set_pull_request_state(
        self, owner: str, repo: str, number: int, state: str
    ) -> dict:
        return await self._request(
            "PATCH", f"/repos/{owner}/{repo}/pulls/{number}", json={"state": state}
        )

    async def set_issue_state(
        self, owner: str, repo: str, number: int, state: str
    ) -> dict:
        return await self._request(
            "PATCH", f"/repos/{owner}/{repo}/issues/{number}", json={"state": state}
        )

    async def create_issue_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> dict:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{number}/comments",
            json={"body": body},
        )

    async def reply_to_review_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        comment_id: int,
        body: str,
    ) -> dict:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/comments/{comment_id}/replies",
            json={"body": body},
        )
