import logging

from aiogram import Bot, F, Router, types
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.types import CallbackQuery

from handlers.catalog import update_product_view
from keyboards.cart_keyboards import cart_kb, cart_reply_kb
from keyboards.catalog_keyboards import categories_kb
from keyboards.main_menu import auth_kb
from services import auth as auth_service
from services import cart as cart_service
from services import catalog as catalog_service
from services.provider import ProviderClient
from services.sessions import UserSession
from utils.texts import (
    AUTH_REQUIRED_TEXT,
    CART_BUTTON_PREFIX,
    CART_CLEARED_TEXT,
    CART_EMPTY_TEXT,
    CHOOSE_CATEGORY_TEXT,
    OUT_OF_STOCK_TEXT,
    PRODUCT_NOT_FOUND_TEXT,
    format_cart,
)

router = Router()
logger = logging.getLogger(__name__)


def _parse_product_id(data: str | None) -> int | None:
    try:
        return int((data or "").rsplit("_", 1)[1])
    except (IndexError, ValueError):
        return None


async def send_cart_counter(bot: Bot, chat_id: int, telegram_id: int) -> None:
    total = cart_service.get_cart_count(telegram_id)
    await bot.send_message(
        chat_id,
        f"🛒 Корзина обновлена ({total})",
        reply_markup=cart_reply_kb(total),
    )


def _forced_in_cart(user_session: UserSession, product_id: int, in_cart: bool) -> bool | None:
    """Состояние кнопки известно только для нажатого товара; для другой карточки читаем из БД."""
    product = catalog_service.current_product(user_session)
    if product is not None and product.id == product_id:
        return in_cart
    return None


async def _show_cart(message: types.Message, telegram_id: int) -> None:
    lines = cart_service.get_cart_lines(telegram_id)
    if not lines:
        await message.answer(CART_EMPTY_TEXT)
        return
    await message.answer(format_cart(lines), reply_markup=cart_kb())


@router.message(F.text.startswith(CART_BUTTON_PREFIX))
async def show_cart(message: types.Message) -> None:
    await _show_cart(message, message.from_user.id)


@router.message(Command("cart"))
async def show_cart_cmd(message: types.Message) -> None:
    await _show_cart(message, message.from_user.id)


@router.callback_query(F.data.startswith("select_"))
async def cart_add_cb(
    callback: CallbackQuery,
    bot: Bot,
    user_session: UserSession,
    provider: ProviderClient,
) -> None:
    telegram_id = callback.from_user.id
    product_id = _parse_product_id(callback.data)
    if product_id is None:
        await callback.answer("Не удалось понять товар 🤔", show_alert=True)
        return

    record = await auth_service.require_authorization(provider, telegram_id)
    if record is None:
        await callback.message.answer(AUTH_REQUIRED_TEXT, reply_markup=auth_kb())
        await callback.answer()
        return

    result = cart_service.add_to_cart(telegram_id, product_id)
    if result.status == cart_service.ADD_NOT_FOUND:
        await callback.answer(PRODUCT_NOT_FOUND_TEXT, show_alert=True)
        return
    if result.status == cart_service.ADD_OUT_OF_STOCK:
        await callback.answer(OUT_OF_STOCK_TEXT, show_alert=True)
        return

    chat_id = callback.message.chat.id
    forced = _forced_in_cart(user_session, product_id, True)
    await update_product_view(bot, chat_id, telegram_id, user_session, force_in_cart=forced)
    await send_cart_counter(bot, chat_id, telegram_id)
    await callback.answer("Добавлено в корзину 🛒")


@router.callback_query(F.data.startswith("remove_"))
async def cart_remove_cb(callback: CallbackQuery, bot: Bot, user_session: UserSession) -> None:
    telegram_id = callback.from_user.id
    product_id = _parse_product_id(callback.data)
    if product_id is None:
        await callback.answer("Не удалось понять товар 🤔", show_alert=True)
        return

    cart_service.remove_from_cart(telegram_id, product_id)

    chat_id = callback.message.chat.id
    forced = _forced_in_cart(user_session, product_id, False)
    await update_product_view(bot, chat_id, telegram_id, user_session, force_in_cart=forced)
    await send_cart_counter(bot, chat_id, telegram_id)
    await callback.answer("Удалено из корзины")


@router.callback_query(F.data == "clear_cart")
async def cart_clear_cb(callback: CallbackQuery, bot: Bot) -> None:
    telegram_id = callback.from_user.id
    cart_service.clear_cart(telegram_id)

    await callback.answer("Корзина очищена")
    try:
        await callback.message.edit_text(CART_CLEARED_TEXT)
    except TelegramBadRequest as exc:
        logger.warning("Не удалось обновить сообщение корзины: %s", exc)

    chat_id = callback.message.chat.id
    await send_cart_counter(bot, chat_id, telegram_id)
    await bot.send_message(chat_id, CHOOSE_CATEGORY_TEXT, reply_markup=categories_kb())
