import secrets
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from hookgram.logger import get_logger


AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"

SCOPES = ("repo", "admin:repo_hook", "read:user")

logger = get_logger("hookgram.github.oauth")


class OAuthError(Exception):
    pass


@dataclass(frozen=True)
class OAuthToken:
    access_token: str
    scopes: List[str] = field(default_factory=list)


def generate_state() -> str:
    """128-bit hex nonce used as the OAuth `state` parameter."""
    return secrets.token_hex(16)


class OAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self._transport = transport

    def login_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "scope": " ".join(SCOPES),
            "state": state,
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str) -> OAuthToken:
        """Trade an authorization code for an access token."""
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    TOKEN_URL,
                    headers={"Accept": "application/json"},
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.redirect_url,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise OAuthError(f"token exchange failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise OAuthError("token endpoint returned non-JSON body") from exc

        token = data.get("access_token")
        if not token:
            raise OAuthError(data.get("error_description") or data.get("error") or "no access token")

        scopes = [s for s in (data.get("scope") or "").split(",") if s]
        logger.info("GitHub OAuth token obtained (scopes: %s)", ",".join(scopes))
        return OAuthToken(access_token=token, scopes=scopes)
