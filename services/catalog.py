from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from database import get_session
from models import CartItem, Product
from services.sessions import UserSession

CATEGORY_MERCH = "merch"
CATEGORY_GIFTS = "gifts"

# Раздел каталога -> значение флага is_gift
CATEGORIES: dict[str, bool] = {
    CATEGORY_MERCH: False,
    CATEGORY_GIFTS: True,
}

NAV_PREV = "prev"
NAV_NEXT = "next"
NAV_BACK = "back"


class CatalogEmpty(Exception):
    """В разделе нет товаров в наличии."""


class UnknownCategory(ValueError):
    pass


@dataclass(frozen=True)
class ProductView:
    id: int
    name: str
    size: str
    price: int
    remains: int
    image_url: str | None
    is_gift: bool

    @classmethod
    def from_model(cls, product: Product) -> "ProductView":
        return cls(
            id=int(product.id),
            name=product.name,
            size=product.size or "",
            price=int(product.price or 0),
            remains=int(product.remains or 0),
            image_url=product.image_url,
            is_gift=bool(product.is_gift),
        )


def load_products(category: str) -> list[ProductView]:
    if category not in CATEGORIES:
        raise UnknownCategory(category)

    with get_session() as session:
        rows = session.scalars(
            select(Product)
            .where(Product.is_gift == CATEGORIES[category], Product.remains > 0)
            .order_by(Product.id)
        ).all()
        return [ProductView.from_model(row) for row in rows]


def select_category(session: UserSession, category: str) -> ProductView:
    """
    Снимок раздела кладётся в сессию целиком, индекс сбрасывается на первый товар.
    Снимок не обновляется сам, поэтому может устареть относительно БД.
    """
    products = load_products(category)
    if not products:
        raise CatalogEmpty(category)

    session.category = category
    session.products = products
    session.index = 0
    session.message_id = None
    return products[0]


def current_product(session: UserSession) -> ProductView | None:
    if 0 <= session.index < len(session.products):
        return session.products[session.index]
    return None


def navigate(session: UserSession, direction: str) -> ProductView | None:
    if direction == NAV_BACK:
        session.reset_navigation()
        return None

    if not session.products:
        return None

    last_index = len(session.products) - 1
    if direction == NAV_PREV:
        session.index = max(0, min(session.index - 1, last_index))
    elif direction == NAV_NEXT:
        session.index = max(0, min(session.index + 1, last_index))
    else:
        raise ValueError(f"Unknown direction {direction!r}")

    return current_product(session)


def is_in_cart(user_id: int | str, product_id: int) -> bool:
    with get_session() as session:
        item = session.scalar(
            select(CartItem.id).where(
                CartItem.user_id == str(user_id),
                CartItem.product_id == int(product_id),
            )
        )
        return item is not None
