from typing import Optional

from fastapi import HTTPException

from hookgram.github.events import handle_event
from hookgram.github.payloads import WebhookEvent, WebhookParseError, parse_event
from hookgram.logger import get_logger
from hookgram.security.webhook_verify import verify_signature
from hookgram.services import Services


logger = get_logger("hookgram.webhooks")

UNAUTHORIZED = "Unauthorized"


def _parse_hook_id(value: Optional[str]) -> Optional[int]:
    if value and value.isascii() and value.isdigit():
        return int(value)
    return None


async def handle_github_webhook(
    services: Services,
    token: str,
    raw_body: bytes,
    event_type: Optional[str],
    signature: Optional[str],
    hook_id: Optional[str] = None,
    content_type: Optional[str] = None,
) -> WebhookEvent:
    """
    Resolve tenant, verify, parse, then hand off delivery.

    Raises HTTPException(401) for a bad token or signature and
    HTTPException(500) for a payload that cannot be parsed. Delivery to
    Telegram is scheduled in the background and not awaited.
    """
    chat_id, ok = services.tenant_tokens.decode(token)
    if not ok:
        logger.warning("Rejected webhook: invalid tenant token")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    # Verified on the raw bytes, before any parsing
    if not verify_signature(raw_body, signature, services.webhook_secret):
        logger.warning("Rejected webhook for chat %s: invalid signature", chat_id)
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    try:
        event = parse_event(event_type, raw_body, content_type)
    except WebhookParseError:
        logger.exception("Webhook parsing failed for chat %s (event %s)", chat_id, event_type)
        raise HTTPException(status_code=500, detail="Parse error")

    logger.info("Verified GitHub event %s for chat %s", event.event_name, chat_id)

    services.spawn(handle_event(services, event, chat_id, _parse_hook_id(hook_id)))
    return event
