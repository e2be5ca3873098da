import logging

from aiogram import Bot, F, Router, types
from aiogram.exceptions import TelegramBadRequest

from keyboards.catalog_keyboards import build_product_card_kb, categories_kb
from keyboards.main_menu import auth_kb
from services import auth as auth_service
from services import catalog as catalog_service
from services.catalog import NAV_BACK, NAV_NEXT, NAV_PREV, CatalogEmpty, UnknownCategory
from services.provider import ProviderClient
from services.sessions import UserSession
from utils.telegram import edit_card, safe_delete, send_card
from utils.texts import (
    AUTH_REQUIRED_TEXT,
    CHOOSE_CATEGORY_TEXT,
    NO_PRODUCTS_TEXT,
    SELECTION_CHANGED_TEXT,
    format_product_caption,
)

router = Router()
logger = logging.getLogger(__name__)


async def update_product_view(
    bot: Bot,
    chat_id: int,
    telegram_id: int,
    user_session: UserSession,
    force_in_cart: bool | None = None,
) -> None:
    """
    Перерисовать карточку текущего товара в уже отправленном сообщении.
    Если карточки нет (message_id пуст), ничего не делаем.
    """
    if user_session.message_id is None:
        return

    product = catalog_service.current_product(user_session)
    if product is None:
        user_session.reset_navigation()
        await bot.send_message(chat_id, SELECTION_CHANGED_TEXT, reply_markup=categories_kb())
        return

    in_cart = (
        force_in_cart
        if force_in_cart is not None
        else catalog_service.is_in_cart(telegram_id, product.id)
    )
    caption = format_product_caption(product)
    keyboard = build_product_card_kb(product.id, user_session.index, len(user_session.products), in_cart)

    try:
        await edit_card(
            bot,
            chat_id,
            user_session.message_id,
            caption=caption,
            photo=product.image_url,
            reply_markup=keyboard,
        )
    except TelegramBadRequest as exc:
        # Например, карточка была текстом, а у товара появилось фото: шлём карточку заново
        logger.warning("Не удалось отредактировать карточку %s: %s", user_session.message_id, exc)
        await safe_delete(bot, chat_id, user_session.message_id)
        sent = await send_card(bot, chat_id, caption=caption, photo=product.image_url, reply_markup=keyboard)
        user_session.message_id = sent.message_id


@router.callback_query(F.data.startswith("cat_"))
async def choose_category(
    callback: types.CallbackQuery,
    bot: Bot,
    user_session: UserSession,
    provider: ProviderClient,
) -> None:
    telegram_id = callback.from_user.id
    category = (callback.data or "").removeprefix("cat_")

    record = await auth_service.require_authorization(provider, telegram_id)
    if record is None:
        await callback.message.answer(AUTH_REQUIRED_TEXT, reply_markup=auth_kb())
        await callback.answer()
        return

    try:
        product = catalog_service.select_category(user_session, category)
    except UnknownCategory:
        await callback.answer("Неизвестный раздел", show_alert=True)
        return
    except CatalogEmpty:
        await callback.message.answer(NO_PRODUCTS_TEXT)
        await callback.answer()
        return

    keyboard = build_product_card_kb(
        product.id,
        user_session.index,
        len(user_session.products),
        catalog_service.is_in_cart(telegram_id, product.id),
    )
    chat_id = callback.message.chat.id
    caption = format_product_caption(product)
    try:
        sent = await send_card(bot, chat_id, caption=caption, photo=product.image_url, reply_markup=keyboard)
    except TelegramBadRequest as exc:
        if not product.image_url:
            raise
        logger.warning("Telegram не принял фото товара %s, отправляем текстом: %s", product.id, exc)
        sent = await send_card(bot, chat_id, caption=caption, photo=None, reply_markup=keyboard)
    user_session.message_id = sent.message_id
    await callback.answer()


@router.callback_query(F.data.in_({NAV_PREV, NAV_NEXT, NAV_BACK}))
async def navigate(
    callback: types.CallbackQuery,
    bot: Bot,
    user_session: UserSession,
) -> None:
    direction = callback.data

    if direction == NAV_BACK:
        catalog_service.navigate(user_session, NAV_BACK)
        await callback.message.answer(CHOOSE_CATEGORY_TEXT, reply_markup=categories_kb())
        await callback.answer()
        return

    if not user_session.products or user_session.message_id is None:
        await callback.answer(SELECTION_CHANGED_TEXT, show_alert=True)
        return

    catalog_service.navigate(user_session, direction)
    await update_product_view(bot, callback.message.chat.id, callback.from_user.id, user_session)
    await callback.answer()


@router.callback_query(F.data == "noop")
async def noop(callback: types.CallbackQuery) -> None:
    """Ответ на кнопку-счётчик «n/N»."""
    await callback.answer()
