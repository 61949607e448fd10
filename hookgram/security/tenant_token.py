"""
Webhook path tokens.

A token is the chat id sealed with AES-GCM and encoded as URL-safe base64
without padding, so it fits in a single path segment. Sealing uses a
fresh nonce, so the same chat gets a different URL for every repository
it links.
"""
import base64
import binascii
import re
from typing import Optional, Tuple

from hookgram.security.cipher import AESGCMCipher


_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]+")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


class TenantTokenCodec:
    def __init__(self, cipher: AESGCMCipher):
        self._cipher = cipher

    def encode(self, chat_id: int) -> str:
        return _b64encode(self._cipher.seal(str(int(chat_id)).encode()))

    def decode(self, token: Optional[str]) -> Tuple[Optional[int], bool]:
        if not token or not _TOKEN_RE.fullmatch(token):
            return None, False

        try:
            sealed = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
        except (binascii.Error, ValueError):
            return None, False

        # Only the canonical spelling is accepted; trailing pad bits must be zero
        if _b64encode(sealed) != token:
            return None, False

        plaintext = self._cipher.open(sealed)
        if plaintext is None:
            return None, False

        text = plaintext.decode("ascii", errors="replace")

        # int() would also accept "+5", " 5" or "5_0"
        digits = text[1:] if text.startswith("-") else text
        if not (digits.isascii() and digits.isdigit()):
            return None, False

        return int(text), True
