from __future__ import annotations

import logging

from aiogram.client.bot import Bot
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup, InputMediaPhoto, Message

logger = logging.getLogger(__name__)


def is_not_modified(exc: TelegramBadRequest) -> bool:
    return "message is not modified" in (exc.message or "").lower()


async def send_card(
    bot: Bot,
    chat_id: int,
    *,
    caption: str,
    photo: str | None,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> Message:
    if photo:
        return await bot.send_photo(chat_id, photo=photo, caption=caption, reply_markup=reply_markup)
    return await bot.send_message(chat_id, caption, reply_markup=reply_markup)


async def edit_card(
    bot: Bot,
    chat_id: int,
    message_id: int,
    *,
    caption: str,
    photo: str | None,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> None:
    """
    Редактирует карточку на месте. «message is not modified» считается успехом,
    остальные TelegramBadRequest пробрасываются.
    """
    try:
        if photo:
            await bot.edit_message_media(
                media=InputMediaPhoto(media=photo, caption=caption),
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
        else:
            await bot.edit_message_text(
                caption,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
    except TelegramBadRequest as exc:
        if is_not_modified(exc):
            logger.debug("Card %s in chat %s is not modified", message_id, chat_id)
            return
        raise


async def safe_delete(bot: Bot, chat_id: int, message_id: int) -> None:
    try:
        await bot.delete_message(chat_id, message_id)
    except TelegramBadRequest as exc:
        logger.warning("Не удалось удалить сообщение %s в чате %s: %s", message_id, chat_id, exc)
