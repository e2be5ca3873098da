from __future__ import annotations

import random

from sqlalchemy import select

from database import get_session
from fakes import delete_product, make_product
from models import CartItem
from services import cart as cart_service


def _rows(user_id: str) -> list[tuple[int, int, int]]:
    with get_session() as session:
        items = session.scalars(
            select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.id)
        ).all()
        return [(item.product_id, item.quantity, item.price) for item in items]


def test_add_increments_single_row_and_denormalizes_price():
    product_id = make_product(price=15, remains=5)

    first = cart_service.add_to_cart(1, product_id)
    second = cart_service.add_to_cart(1, product_id)

    assert first.ok and first.quantity == 1
    assert second.ok and second.quantity == 2
    assert _rows("1") == [(product_id, 2, 30)]


def test_add_rejected_at_stock_limit_without_mutation():
    product_id = make_product(price=10, remains=2)
    cart_service.add_to_cart(1, product_id)
    cart_service.add_to_cart(1, product_id)
    before = _rows("1")

    result = cart_service.add_to_cart(1, product_id)

    assert result.status == cart_service.ADD_OUT_OF_STOCK
    assert result.quantity == 2
    assert _rows("1") == before


def test_add_unknown_product():
    assert cart_service.add_to_cart(1, 404).status == cart_service.ADD_NOT_FOUND
    assert _rows("1") == []


def test_add_sold_out_product_is_rejected():
    product_id = make_product(remains=0)

    assert cart_service.add_to_cart(1, product_id).status == cart_service.ADD_OUT_OF_STOCK
    assert _rows("1") == []


def test_remove_deletes_whole_line():
    keep_id = make_product("Кружка")
    product_id = make_product(remains=10)
    cart_service.add_to_cart(1, keep_id)
    for _ in range(4):
        cart_service.add_to_cart(1, product_id)

    cart_service.remove_from_cart(1, product_id)

    lines = cart_service.get_cart_lines(1)
    assert [line.product_id for line in lines] == [keep_id]


def test_clear_only_touches_own_cart():
    product_id = make_product()
    cart_service.add_to_cart(1, product_id)
    cart_service.add_to_cart(2, product_id)

    cart_service.clear_cart(1)

    assert cart_service.get_cart_lines(1) == []
    assert cart_service.get_cart_count(2) == 1


def test_cart_lines_join_live_products_and_keep_stale_rows():
    alive_id = make_product("Футболка", size="M", price=20, remains=4)
    gone_id = make_product("Кепка", price=5)
    cart_service.add_to_cart(1, alive_id)
    cart_service.add_to_cart(1, alive_id)
    cart_service.add_to_cart(1, gone_id)
    delete_product(gone_id)

    alive, gone = cart_service.get_cart_lines(1)

    assert alive.exists and alive.name == "Футболка" and alive.size == "M"
    assert alive.quantity == 2 and alive.unit_price == 20 and alive.line_total == 40
    assert alive.remains == 4
    assert gone.exists is False and gone.product_id == gone_id
    assert cart_service.get_cart_count(1) == 3


def test_count_of_empty_cart_is_zero():
    assert cart_service.get_cart_count(1) == 0
    assert cart_service.get_cart_lines(1) == []


def test_random_add_remove_never_exceeds_stock():
    rng = random.Random(20240101)
    stock = {make_product(f"Товар {idx}", remains=idx): idx for idx in range(4)}

    for _ in range(200):
        product_id = rng.choice(list(stock))
        if rng.random() < 0.8:
            cart_service.add_to_cart(1, product_id)
        else:
            cart_service.remove_from_cart(1, product_id)

        for pid, quantity, _price in _rows("1"):
            assert 0 < quantity <= stock[pid]
