"""Записи для ручной сверки, когда заказ оборвался после списания баллов."""

from __future__ import annotations

import logging

from sqlalchemy import select

from database import get_session
from models import ReconciliationRecord

logger = logging.getLogger(__name__)

STEP_STOCK_DECREMENT = "stock_decrement"
STEP_CART_CLEAR = "cart_clear"


def record_reconciliation(
    telegram_id: int,
    step: str,
    *,
    amount: int,
    product_id: int | None = None,
    quantity: int | None = None,
    details: str | None = None,
) -> None:
    """Пишет запись в order_reconciliations; если БД недоступна, остаётся строка в логе."""
    logger.error(
        "RECONCILIATION NEEDED step=%s telegram_id=%s product_id=%s quantity=%s amount=%s details=%s",
        step,
        telegram_id,
        product_id,
        quantity,
        amount,
        details,
    )
    try:
        with get_session() as session:
            session.add(
                ReconciliationRecord(
                    telegram_id=int(telegram_id),
                    step=step,
                    product_id=product_id,
                    quantity=quantity,
                    amount=int(amount),
                    details=details,
                )
            )
    except Exception:  # noqa: BLE001
        logger.exception("Не удалось сохранить запись для сверки telegram_id=%s", telegram_id)


def list_reconciliations(limit: int = 100) -> list[ReconciliationRecord]:
    with get_session() as session:
        return list(
            session.scalars(
                select(ReconciliationRecord).order_by(ReconciliationRecord.id.desc()).limit(limit)
            ).all()
        )
