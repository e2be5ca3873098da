from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from utils.texts import format_cart_button


def cart_reply_kb(total: int) -> ReplyKeyboardMarkup:
    """Постоянная кнопка «🛒 Корзина (n)» под полем ввода."""

    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=format_cart_button(total))]],
        resize_keyboard=True,
        one_time_keyboard=False,
    )


def cart_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="Заказать ✅", callback_data="order")],
            [InlineKeyboardButton(text="🧹 Очистить", callback_data="clear_cart")],
        ]
    )
