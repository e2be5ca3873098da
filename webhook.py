"""
Приложение для режима MODE=webhook: Telegram присылает апдейты POST-запросом.
Запуск: uvicorn webhook:app
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from aiogram.types import Update
from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel

from bot import create_bot, create_dispatcher
from config import Settings, get_settings
from database import init_db
from utils.commands_map import set_bot_commands
from utils.logging_config import setup_logging

APP_TITLE = "Points Shop Bot"
APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


class WebhookAck(BaseModel):
    ok: bool = True


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    bot = create_bot(settings)
    dp = create_dispatcher(settings, bot)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(log_file=settings.log_file)
        init_db()
        await set_bot_commands(bot)
        sweeper = asyncio.create_task(dp["sessions"].run_sweeper())
        try:
            yield
        finally:
            sweeper.cancel()
            await bot.session.close()

    app = FastAPI(title=APP_TITLE, version=APP_VERSION, lifespan=lifespan)

    @app.get("/")
    def healthcheck() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/webhook", response_model=WebhookAck)
    async def telegram_webhook(
        request: Request,
        x_telegram_bot_api_secret_token: str | None = Header(default=None),
    ) -> WebhookAck:
        if settings.webhook_secret and x_telegram_bot_api_secret_token != settings.webhook_secret:
            raise HTTPException(status_code=403, detail="invalid_secret")

        payload: dict[str, Any] = await request.json()
        update = Update.model_validate(payload, context={"bot": bot})
        await dp.feed_update(bot, update)
        return WebhookAck()

    return app


app = create_app()


__all__ = ["app", "create_app"]
