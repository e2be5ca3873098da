from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select

from database import get_session
from models import CartItem, Product

logger = logging.getLogger(__name__)

ADD_OK = "added"
ADD_OUT_OF_STOCK = "out_of_stock"
ADD_NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AddResult:
    status: str
    quantity: int = 0
    remains: int = 0

    @property
    def ok(self) -> bool:
        return self.status == ADD_OK


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    cart_price: int
    name: str | None = None
    size: str | None = None
    unit_price: int = 0
    remains: int = 0
    exists: bool = True

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price


def add_to_cart(user_id: int | str, product_id: int) -> AddResult:
    """
    +1 единица товара. Остаток и цена перечитываются в той же сессии прямо перед записью.
    Если в корзине уже столько, сколько осталось на складе, ничего не меняем.
    """
    user_key = str(user_id)
    with get_session() as session:
        product = session.get(Product, int(product_id))
        if product is None:
            return AddResult(ADD_NOT_FOUND)

        remains = int(product.remains or 0)
        unit_price = int(product.price or 0)

        existing = session.scalar(
            select(CartItem).where(
                CartItem.user_id == user_key,
                CartItem.product_id == int(product_id),
            )
        )
        current_qty = int(existing.quantity) if existing else 0
        if current_qty >= remains:
            return AddResult(ADD_OUT_OF_STOCK, quantity=current_qty, remains=remains)

        new_qty = current_qty + 1
        if existing:
            existing.quantity = new_qty
            existing.price = new_qty * unit_price
        else:
            session.add(
                CartItem(
                    user_id=user_key,
                    product_id=int(product_id),
                    quantity=new_qty,
                    price=new_qty * unit_price,
                )
            )
        return AddResult(ADD_OK, quantity=new_qty, remains=remains)


def remove_from_cart(user_id: int | str, product_id: int) -> None:
    """Удаляет позицию целиком, а не одну единицу."""
    with get_session() as session:
        session.execute(
            delete(CartItem).where(
                CartItem.user_id == str(user_id),
                CartItem.product_id == int(product_id),
            )
        )


def clear_cart(user_id: int | str) -> None:
    with get_session() as session:
        session.execute(delete(CartItem).where(CartItem.user_id == str(user_id)))


def get_cart_lines(user_id: int | str) -> list[CartLine]:
    """Позиции корзины вместе с текущим состоянием товаров, включая уже удалённые из каталога."""
    with get_session() as session:
        rows = session.execute(
            select(CartItem, Product)
            .outerjoin(Product, Product.id == CartItem.product_id)
            .where(CartItem.user_id == str(user_id))
            .order_by(CartItem.id)
        ).all()

    lines: list[CartLine] = []
    for item, product in rows:
        if product is None:
            lines.append(
                CartLine(
                    product_id=int(item.product_id),
                    quantity=int(item.quantity),
                    cart_price=int(item.price or 0),
                    exists=False,
                )
            )
            continue
        lines.append(
            CartLine(
                product_id=int(item.product_id),
                quantity=int(item.quantity),
                cart_price=int(item.price or 0),
                name=product.name,
                size=product.size,
                unit_price=int(product.price or 0),
                remains=int(product.remains or 0),
            )
        )
    return lines


def get_cart_count(user_id: int | str) -> int:
    with get_session() as session:
        total = session.scalar(
            select(func.coalesce(func.sum(CartItem.quantity), 0)).where(CartItem.user_id == str(user_id))
        )
        return int(total or 0)
