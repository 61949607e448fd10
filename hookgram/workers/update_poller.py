import asyncio

from hookgram.logger import get_logger
from hookgram.services import Services
from hookgram.telegram.client import TelegramError
from hookgram.telegram.router import UpdateRouter


logger = get_logger("hookgram.workers.poller")

POLL_TIMEOUT_SECONDS = 30
RETRY_DELAY_SECONDS = 5


async def poll_updates(services: Services, router: UpdateRouter):
    """
    Long-poll getUpdates and route every update in its own task.

    Updates queued while the bot was down are dropped on the first call.
    """
    offset = None
    first = True

    while True:
        try:
            updates = await services.telegram.get_updates(
                offset=offset,
                timeout=POLL_TIMEOUT_SECONDS,
                drop_pending=first,
            )
            first = False

            for update in updates or []:
                offset = update["update_id"] + 1
                services.spawn(router.route(update))

        except asyncio.CancelledError:
            logger.info("Update poller cancelled")
            raise
        except TelegramError as exc:
            logger.warning("getUpdates failed: %s", exc)
            await asyncio.sleep(RETRY_DELAY_SECONDS)
        except Exception:
            logger.exception("Update poller error")
            await asyncio.sleep(RETRY_DELAY_SECONDS)
