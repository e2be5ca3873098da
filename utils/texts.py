from html import escape
from typing import Iterable

from services.cart import CartLine
from services.catalog import ProductView

CHOOSE_CATEGORY_TEXT = "Выберите раздел:"
CART_BUTTON_PREFIX = "🛒 Корзина"

AUTH_REQUIRED_TEXT = (
    "Чтобы пользоваться магазином, нужно авторизоваться через email, "
    "который вы используете в iSpring."
)
ASK_EMAIL_TEXT = "Введите email, с которым вы зарегистрированы в iSpring:"
EMAIL_INVALID_TEXT = "Это не похоже на email. Попробуйте ещё раз."
EMAIL_NOT_FOUND_TEXT = "Пользователь с таким email не найден. Проверьте адрес и отправьте его ещё раз."
DIRECTORY_UNAVAILABLE_TEXT = "Не удалось получить список пользователей iSpring. Попробуйте позже."

NO_PRODUCTS_TEXT = "Нет товаров"
SELECTION_CHANGED_TEXT = "Выбор изменился, выберите раздел заново."
OUT_OF_STOCK_TEXT = "Больше добавить нельзя: товар закончился на складе."
PRODUCT_NOT_FOUND_TEXT = "Товар не найден 😢"
CART_EMPTY_TEXT = "Корзина пуста"
CART_CLEARED_TEXT = "Корзина очищена ✅"

ORDER_NOT_AUTHORIZED_TEXT = "Не удалось определить пользователя. Авторизуйтесь заново."
ORDER_STALE_TEXT = "Некоторые товары из корзины больше не продаются. Обновите корзину."
ORDER_BALANCE_UNKNOWN_TEXT = "Не удалось получить баланс баллов. Попробуйте позже."
ORDER_DEBIT_FAILED_TEXT = "Не удалось списать баллы, попробуйте позже."


def format_points(points: int | None) -> str:
    if points is None:
        return "недоступен"
    return f"{points} баллов"


def format_product_caption(product: ProductView) -> str:
    return (
        f"<b>{escape(product.name)}</b> | {escape(product.size)}\n"
        f"Цена: {product.price} баллов\n"
        f"Осталось: {product.remains}"
    )


def format_cart_button(total: int) -> str:
    return f"{CART_BUTTON_PREFIX} ({total})"


def format_cart(lines: Iterable[CartLine]) -> str:
    rows: list[str] = ["🛒 <b>Ваша корзина:</b>"]
    total = 0
    for idx, line in enumerate(lines, start=1):
        if not line.exists:
            rows.append(f"{idx}. Товар #{line.product_id} больше недоступен ×{line.quantity}")
            continue
        rows.append(
            f"{idx}. {escape(line.name or '')} | {escape(line.size or '')} ×{line.quantity}"
            f" — {line.line_total} баллов"
        )
        total += line.line_total
    rows.append("")
    rows.append(f"Итого: <b>{total}</b> баллов")
    return "\n".join(rows)


def format_shortages(shortages: Iterable[CartLine]) -> str:
    rows = ["Не хватает товара на складе:"]
    for line in shortages:
        rows.append(
            f"• {escape(line.name or '')} (#{line.product_id}): в корзине {line.quantity}, осталось {line.remains}"
        )
    rows.append("Уменьшите количество и попробуйте снова.")
    return "\n".join(rows)


def format_insufficient_points(balance: int, total: int) -> str:
    return f"Недостаточно баллов: нужно {total}, у вас {balance}."


def format_auth_success(name: str, points: int | None) -> str:
    return f"Готово, {escape(name)}! Ваш баланс: {format_points(points)}."


def format_order_placed(new_balance: int) -> str:
    return f"Заказ оформлен и отправлен администратору! Остаток баллов: {new_balance}."


def format_order_summary(
    buyer_name: str,
    email: str | None,
    lines: Iterable[CartLine],
    total: int,
) -> str:
    """Текст заказа без разметки: уходит и в Telegram, и на почту."""
    rows = [f"Новый заказ от {buyer_name}" + (f" ({email})" if email else "") + ":"]
    for line in lines:
        rows.append(f"{line.name} | {line.size} ×{line.quantity} = {line.line_total}")
    rows.append(f"Итого списано: {total} баллов")
    return "\n".join(rows)
