from hookgram import settings  # load .env
from fastapi import FastAPI, Request, Header
from fastapi.responses import HTMLResponse
from contextlib import asynccontextmanager
from typing import Optional
import asyncio

from hookgram.github.connect import complete_oauth
from hookgram.github.webhook import handle_github_webhook
from hookgram.logger import get_logger
from hookgram.services import Services, build_services
from hookgram.settings import validate_settings
from hookgram.telegram.client import TelegramError
from hookgram.telegram.router import UpdateRouter
from hookgram.workers.cache_janitor import cleanup_loop
from hookgram.workers.update_poller import poll_updates


logger = get_logger()

CONNECTED_PAGE = (
    "<html><body><h2>✅ GitHub account connected</h2>"
    "<p>You can close this tab and return to Telegram.</p></body></html>"
)


async def _identify_bot(services: Services):
    try:
        me = await services.telegram.get_me()
    except TelegramError:
        logger.warning("getMe failed; group commands addressed with @username are ignored")
        return
    services.bot_username = me.get("username", "")
    services.bot_user_id = me.get("id", 0)
    logger.info("Running as @%s", services.bot_username)


async def _stop(task: asyncio.Task, name: str):
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    logger.info("%s stopped", name)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Optional[Services] = app.state.services
    if services is None:
        # Validate critical configuration early
        validate_settings()
        services = build_services()
        app.state.services = services

    await _identify_bot(services)

    tasks = [(asyncio.create_task(cleanup_loop(services.caches)), "Cache janitor")]
    logger.info("Cache janitor started")

    if settings.TELEGRAM_POLLING_ENABLED:
        router = UpdateRouter(services)
        tasks.append((asyncio.create_task(poll_updates(services, router)), "Update poller"))
        logger.info("Update poller started")

    try:
        yield
    finally:
        # Shutdown: cancel background tasks cleanly
        for task, name in tasks:
            await _stop(task, name)
        await services.telegram.aclose()


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(lifespan=lifespan)
    app.state.services = services

    @app.get("/")
    async def health():
        return {"status": "ok"}

    @app.post("/webhook/{token:path}")
    async def github_webhook(
        token: str,
        request: Request,
        x_hub_signature_256: str | None = Header(None),
        x_github_event: str | None = Header(None),
        x_github_hook_id: str | None = Header(None),
        content_type: str | None = Header(None),
    ):
        body = await request.body()

        await handle_github_webhook(
            request.app.state.services,
            token,
            body,
            x_github_event,
            x_hub_signature_256,
            hook_id=x_github_hook_id,
            content_type=content_type,
        )
        return {"status": "ok"}

    @app.get("/oauth/callback", response_class=HTMLResponse)
    async def oauth_callback(
        request: Request,
        code: str | None = None,
        state: str | None = None,
    ):
        await complete_oauth(request.app.state.services, code, state)
        return CONNECTED_PAGE

    return app


app = create_app()


# 👇 This makes `python -m hookgram.main` work
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hookgram.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=False,
    )
