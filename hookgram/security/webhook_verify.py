import hmac
import hashlib
from typing import Optional


SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    mac = hmac.new(secret.encode(), msg=payload, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + mac.hexdigest()


def verify_signature(
    payload: bytes,
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Verify a GitHub webhook signature (X-Hub-Signature-256).

    `payload` must be the raw request body exactly as received.
    Returns False on any validation failure.
    """
    if not signature or not secret:
        return False

    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected.encode(), signature.strip().encode())
