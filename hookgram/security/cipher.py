import base64
import binascii
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


NONCE_SIZE = 12

_RAW_KEY_LENGTHS = (16, 24, 32)
_HEX_KEY_LENGTH = 64


def load_key(key: str) -> bytes:
    """
    Turn a configured key string into AES key bytes.

    Accepts 64 hex characters or a raw 16/24/32 character key.
    Anything else raises ValueError; keys are never padded or truncated.
    """
    if len(key) == _HEX_KEY_LENGTH:
        try:
            return bytes.fromhex(key)
        except ValueError as exc:
            raise ValueError("64-character key must be valid hex") from exc

    raw = key.encode()
    if len(key) in _RAW_KEY_LENGTHS and len(raw) == len(key):
        return raw

    raise ValueError(
        "invalid key length: must be 16, 24 or 32 bytes (raw) or 64 hex chars"
    )


class AESGCMCipher:
    """Authenticated encryption with a fresh random nonce per seal()."""

    def __init__(self, key: str):
        self._aead = AESGCM(load_key(key))

    def seal(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, plaintext, None)

    def open(self, sealed: bytes) -> Optional[bytes]:
        """Return the plaintext, or None if the data was not sealed by us."""
        if len(sealed) < NONCE_SIZE:
            return None

        nonce, ciphertext = sealed[:NONCE_SIZE], sealed[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            return None

    def encrypt_text(self, text: str) -> str:
        return base64.b64encode(self.seal(text.encode())).decode()

    def decrypt_text(self, token: str) -> Optional[str]:
        try:
            sealed = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError):
            return None

        plaintext = self.open(sealed)
        if plaintext is None:
            return None

        try:
            return plaintext.decode()
        except UnicodeDecodeError:
            return None
