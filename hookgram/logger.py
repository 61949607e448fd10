import logging
from typing import Optional

from hookgram.settings import LOG_LEVEL


_ROOT_LOGGER_NAME = "hookgram"
_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def _level() -> int:
    level = logging.getLevelName(LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for one area of the bot, e.g. ``hookgram.webhooks``.

    Each name gets a single StreamHandler at LOG_LEVEL (INFO unless
    configured; unknown level names also mean INFO) and does not
    propagate, so records are never printed twice.
    """
    logger = logging.getLogger(name or _ROOT_LOGGER_NAME)

    if not logger.handlers:
        level = _level()
        logger.setLevel(level)

        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))

        logger.addHandler(handler)
        logger.propagate = False

    return logger
