import asyncio
import logging
import os
from datetime import timedelta

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from config import MODE_WEBHOOK, Settings, get_settings
from database import init_db
from handlers import cart, catalog, checkout, login, start
from middlewares.user_session import UserSessionMiddleware
from services.notifications import Notifier
from services.provider import ProviderClient
from services.sessions import SessionStore
from utils.commands_map import set_bot_commands
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_bot(settings: Settings) -> Bot:
    # В aiogram 3.7.0+ parse_mode передаётся через DefaultBotProperties
    return Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(settings: Settings, bot: Bot) -> Dispatcher:
    """
    Собирает диспетчер. Клиент iSpring, таблица сессий и уведомления создаются
    один раз и попадают в хендлеры как аргументы provider, sessions, notifier.
    """
    sessions = SessionStore(idle_ttl=settings.session_idle_ttl)
    provider = ProviderClient(
        settings.ispring_base_url,
        settings.ispring_client_id,
        settings.ispring_client_secret,
        timeout=settings.http_timeout,
    )

    dp = Dispatcher(
        settings=settings,
        sessions=sessions,
        provider=provider,
        notifier=Notifier(bot, settings),
        auth_ttl=timedelta(hours=settings.auth_ttl_hours),
    )
    dp.update.outer_middleware(UserSessionMiddleware(sessions))

    # Корзина раньше авторизации: кнопка «Корзина» не должна считаться вводом email
    dp.include_router(start.router)
    dp.include_router(cart.router)
    dp.include_router(catalog.router)
    dp.include_router(checkout.router)
    dp.include_router(login.router)
    return dp


async def main() -> None:
    settings = get_settings()
    setup_logging(log_file=settings.log_file)

    # Инициализация БД (создаём таблицы при первом запуске)
    init_db()

    bot = create_bot(settings)
    dp = create_dispatcher(settings, bot)
    await set_bot_commands(bot)

    sweeper = asyncio.create_task(dp["sessions"].run_sweeper())
    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Бот запущен в режиме polling")
        await dp.start_polling(bot)
    finally:
        sweeper.cancel()


if __name__ == "__main__":
    if get_settings().mode == MODE_WEBHOOK:
        import uvicorn

        uvicorn.run(
            "webhook:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )
    else:
        asyncio.run(main())
