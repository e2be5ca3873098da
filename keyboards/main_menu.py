from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup


def auth_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="🔑 Авторизоваться", callback_data="auth_start")]]
    )
