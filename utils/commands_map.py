"""Карта команд бота для меню Telegram."""

from __future__ import annotations

from aiogram import Bot
from aiogram.types import BotCommand

USER_COMMANDS: dict[str, str] = {
    "start": "Запуск бота и выбор раздела",
    "login": "Авторизация по email iSpring",
    "cart": "Показать корзину",
}


def get_user_commands() -> dict[str, str]:
    """Вернуть карту пользовательских команд."""

    return USER_COMMANDS


async def set_bot_commands(bot: Bot) -> None:
    await bot.set_my_commands(
        [BotCommand(command=name, description=title) for name, title in get_user_commands().items()]
    )
