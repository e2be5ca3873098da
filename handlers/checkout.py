import logging

from aiogram import Bot, F, Router, types

from keyboards.cart_keyboards import cart_reply_kb
from keyboards.catalog_keyboards import categories_kb
from keyboards.main_menu import auth_kb
from services import auth as auth_service
from services import checkout as checkout_service
from services.notifications import Notifier
from services.provider import ProviderClient
from services.sessions import UserSession
from utils.texts import (
    CART_EMPTY_TEXT,
    CHOOSE_CATEGORY_TEXT,
    ORDER_BALANCE_UNKNOWN_TEXT,
    ORDER_DEBIT_FAILED_TEXT,
    ORDER_NOT_AUTHORIZED_TEXT,
    ORDER_STALE_TEXT,
    format_cart_button,
    format_insufficient_points,
    format_order_placed,
    format_shortages,
)

router = Router()
logger = logging.getLogger(__name__)


@router.callback_query(F.data == "order")
async def place_order_cb(
    callback: types.CallbackQuery,
    bot: Bot,
    user_session: UserSession,
    provider: ProviderClient,
    notifier: Notifier,
) -> None:
    await callback.answer("Оформляем заказ...")
    telegram_id = callback.from_user.id
    chat_id = callback.message.chat.id

    result = await checkout_service.place_order(
        telegram_id,
        provider=provider,
        notifier=notifier,
        buyer_name=callback.from_user.full_name,
    )

    if result.status == checkout_service.ORDER_NOT_AUTHORIZED:
        await auth_service.refresh_directory(provider)
        await bot.send_message(chat_id, ORDER_NOT_AUTHORIZED_TEXT, reply_markup=auth_kb())
        return
    if result.status == checkout_service.ORDER_EMPTY:
        await bot.send_message(chat_id, CART_EMPTY_TEXT)
        return
    if result.status == checkout_service.ORDER_STALE:
        await bot.send_message(chat_id, ORDER_STALE_TEXT)
        return
    if result.status == checkout_service.ORDER_SHORTAGE:
        await bot.send_message(chat_id, format_shortages(result.shortages))
        return
    if result.status == checkout_service.ORDER_BALANCE_UNKNOWN:
        await bot.send_message(chat_id, ORDER_BALANCE_UNKNOWN_TEXT)
        return
    if result.status == checkout_service.ORDER_INSUFFICIENT:
        await bot.send_message(chat_id, format_insufficient_points(result.balance, result.total))
        return
    if result.status == checkout_service.ORDER_DEBIT_FAILED:
        await bot.send_message(chat_id, ORDER_DEBIT_FAILED_TEXT)
        return

    user_session.reset_navigation()
    await bot.send_message(chat_id, format_order_placed(result.new_balance))
    await bot.send_message(chat_id, format_cart_button(0), reply_markup=cart_reply_kb(0))
    await bot.send_message(chat_id, CHOOSE_CATEGORY_TEXT, reply_markup=categories_kb())
