import logging

from aiogram import Router, types
from aiogram.filters import CommandStart

from keyboards.cart_keyboards import cart_reply_kb
from keyboards.catalog_keyboards import categories_kb
from keyboards.main_menu import auth_kb
from services import auth as auth_service
from services import cart as cart_service
from services.provider import ProviderClient
from services.sessions import UserSession
from utils.texts import AUTH_REQUIRED_TEXT, CHOOSE_CATEGORY_TEXT, format_cart_button

router = Router()
logger = logging.getLogger(__name__)


async def send_category_menu(message: types.Message, telegram_id: int) -> None:
    """Меню разделов плюс постоянная кнопка корзины с актуальным счётчиком."""
    total = cart_service.get_cart_count(telegram_id)
    await message.answer(format_cart_button(total), reply_markup=cart_reply_kb(total))
    await message.answer(CHOOSE_CATEGORY_TEXT, reply_markup=categories_kb())


@router.message(CommandStart())
async def cmd_start(
    message: types.Message,
    user_session: UserSession,
    provider: ProviderClient,
) -> None:
    user_session.reset_navigation()
    user_session.reset_auth()

    record = await auth_service.require_authorization(provider, message.from_user.id)
    if record is None:
        await message.answer(AUTH_REQUIRED_TEXT, reply_markup=auth_kb())
        return

    await send_category_menu(message, message.from_user.id)
