"""
Оформление заказа за баллы.

Транзакции на весь заказ нет, поэтому порядок шагов важен:
проверки -> списание баллов -> остатки -> уведомления -> очистка корзины.
Списание необратимо. Всё, что ломается после него, не откатывается,
а попадает в order_reconciliations для ручной сверки.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import update

from database import get_session
from models import Product
from services import auth as auth_service
from services import cart as cart_service
from services.cart import CartLine
from services.notifications import Notifier
from services.provider import ProviderClient, ProviderError
from services.reconciliation import STEP_CART_CLEAR, STEP_STOCK_DECREMENT, record_reconciliation
from utils.texts import format_order_summary

logger = logging.getLogger(__name__)

ORDER_NOT_AUTHORIZED = "not_authorized"
ORDER_EMPTY = "empty"
ORDER_STALE = "stale"
ORDER_SHORTAGE = "shortage"
ORDER_BALANCE_UNKNOWN = "balance_unknown"
ORDER_INSUFFICIENT = "insufficient"
ORDER_DEBIT_FAILED = "debit_failed"
ORDER_PLACED = "placed"

WITHDRAW_REASON = "Заказ в Telegram-магазине"


@dataclass
class OrderResult:
    status: str
    lines: list[CartLine] = field(default_factory=list)
    shortages: list[CartLine] = field(default_factory=list)
    total: int = 0
    balance: int | None = None
    new_balance: int | None = None

    @property
    def placed(self) -> bool:
        return self.status == ORDER_PLACED


def calculate_total(lines: list[CartLine]) -> int:
    """Сумма по текущим ценам каталога, денормализованная цена в корзине не используется."""
    return sum(line.quantity * line.unit_price for line in lines)


def find_shortages(lines: list[CartLine]) -> list[CartLine]:
    return [line for line in lines if line.quantity > line.remains]


def decrement_stock(product_id: int, quantity: int) -> None:
    with get_session() as session:
        result = session.execute(
            update(Product)
            .where(Product.id == int(product_id))
            .values(remains=Product.remains - int(quantity))
        )
        if result.rowcount == 0:
            raise LookupError(f"Product {product_id} not found")


async def place_order(
    telegram_id: int,
    *,
    provider: ProviderClient,
    notifier: Notifier,
    buyer_name: str,
) -> OrderResult:
    """Вызывающий держит блокировку пользователя, чтобы два заказа не шли параллельно."""
    record = auth_service.get_authorization(telegram_id)
    if record is None:
        return OrderResult(ORDER_NOT_AUTHORIZED)

    lines = cart_service.get_cart_lines(telegram_id)
    if not lines:
        return OrderResult(ORDER_EMPTY)

    if any(not line.exists for line in lines):
        return OrderResult(ORDER_STALE, lines=lines)

    shortages = find_shortages(lines)
    if shortages:
        return OrderResult(ORDER_SHORTAGE, lines=lines, shortages=shortages)

    total = calculate_total(lines)

    try:
        balance = await provider.get_points(record.ispring_user_id)
    except ProviderError:
        logger.exception("Не удалось получить баланс для %s", record.ispring_user_id)
        balance = None
    if balance is None:
        return OrderResult(ORDER_BALANCE_UNKNOWN, lines=lines, total=total)

    if balance < total:
        return OrderResult(ORDER_INSUFFICIENT, lines=lines, total=total, balance=balance)

    debited = await provider.withdraw_points(record.ispring_user_id, total, WITHDRAW_REASON)
    if not debited:
        return OrderResult(ORDER_DEBIT_FAILED, lines=lines, total=total, balance=balance)

    logger.info("Списано %s баллов у %s (telegram_id=%s)", total, record.ispring_user_id, telegram_id)

    for line in lines:
        try:
            decrement_stock(line.product_id, line.quantity)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Не удалось уменьшить остаток товара %s", line.product_id)
            record_reconciliation(
                telegram_id,
                STEP_STOCK_DECREMENT,
                amount=total,
                product_id=line.product_id,
                quantity=line.quantity,
                details=str(exc),
            )

    try:
        summary = format_order_summary(buyer_name, record.email, lines, total)
        await notifier.notify_order(summary, buyer_email=record.email)
    except Exception:  # noqa: BLE001
        logger.exception("Не удалось отправить уведомления о заказе telegram_id=%s", telegram_id)

    try:
        cart_service.clear_cart(telegram_id)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Не удалось очистить корзину telegram_id=%s после заказа", telegram_id)
        record_reconciliation(telegram_id, STEP_CART_CLEAR, amount=total, details=str(exc))

    return OrderResult(
        ORDER_PLACED,
        lines=lines,
        total=total,
        balance=balance,
        new_balance=balance - total,
    )
