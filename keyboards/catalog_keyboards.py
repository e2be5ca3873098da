from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from services.catalog import CATEGORY_GIFTS, CATEGORY_MERCH, NAV_BACK, NAV_NEXT, NAV_PREV

CATEGORY_TITLES: dict[str, str] = {
    CATEGORY_MERCH: "Мерч",
    CATEGORY_GIFTS: "Подарки",
}


def categories_kb() -> InlineKeyboardMarkup:
    """Выбор раздела каталога."""

    buttons = [
        InlineKeyboardButton(text=title, callback_data=f"cat_{category}")
        for category, title in CATEGORY_TITLES.items()
    ]
    return InlineKeyboardMarkup(inline_keyboard=[buttons])


def build_product_card_kb(
    product_id: int, index: int, total: int, is_in_cart: bool
) -> InlineKeyboardMarkup:
    """Inline-клавиатура под карточкой товара: листание, выбор/удаление, назад."""

    cart_button = (
        InlineKeyboardButton(text="Удалить 🗑️", callback_data=f"remove_{product_id}")
        if is_in_cart
        else InlineKeyboardButton(text="Выбрать 🎯", callback_data=f"select_{product_id}")
    )

    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="⬅️", callback_data=NAV_PREV),
                InlineKeyboardButton(text=f"{index + 1}/{total}", callback_data="noop"),
                InlineKeyboardButton(text="➡️", callback_data=NAV_NEXT),
            ],
            [cart_button],
            [InlineKeyboardButton(text="Назад ◀️", callback_data=NAV_BACK)],
        ]
    )
