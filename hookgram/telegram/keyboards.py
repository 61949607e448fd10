from typing import Callable, Dict, List, Optional

from hookgram.logger import get_logger


Button = Dict[str, str]
Keyboard = List[List[Button]]

logger = get_logger("hookgram.telegram.keyboards")


def url_button(text: str, url: str) -> Button:
    return {"text": text, "url": url}


def callback_button(text: str, data: str) -> Button:
    return {"text": text, "callback_data": data}


def callback_button_or_none(text: str, build: Callable[[], str]) -> Optional[Button]:
    """Build a callback button, or None when the payload would not fit."""
    try:
        return callback_button(text, build())
    except ValueError:
        logger.warning("Skipping button %r: callback data too long", text)
        return None


def reply_markup(keyboard: Optional[Keyboard]) -> Optional[dict]:
    if not keyboard:
        return None
    return {"inline_keyboard": keyboard}


def chunked(buttons: List[Button], size: int) -> Keyboard:
    return [buttons[i:i + size] for i in range(0, len(buttons), size)]
