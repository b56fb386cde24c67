"""Parallel cart writes against a file-backed SQLite database."""

import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine

from common.db.session import init_db, make_session_factory
from common.models.cart import Cart
from common.models.cart_item import CartItem
from common.models.product import Product
from common.services.cart_identity import CartOwner
from common.services.cart_service import CartService


THREADS = 8
ADDS_PER_THREAD = 5


@pytest.fixture
def file_session_factory(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'shop.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    init_db(eng)
    factory = make_session_factory(eng)
    with factory() as s:
        s.add(Product(id="p1", name="Nhớt", slug="nhot", price=Decimal("100"), in_stock=True))
    yield factory
    eng.dispose()


def _run_in_threads(target):
    barrier = threading.Barrier(THREADS)
    errors = []

    def worker():
        barrier.wait()
        try:
            target()
        except Exception as exc:  # collected and asserted on below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


def test_parallel_adds_sum_into_one_line(file_session_factory):
    service = CartService(file_session_factory)
    owner = CartOwner(session_id=service.add_item(CartOwner(), product_id="p1")["new_session_id"])

    def add_many():
        for _ in range(ADDS_PER_THREAD):
            service.add_item(owner, product_id="p1", quantity=1)

    assert _run_in_threads(add_many) == []

    with file_session_factory() as s:
        lines = s.query(CartItem).all()
        assert len(lines) == 1
        assert lines[0].quantity == 1 + THREADS * ADDS_PER_THREAD


def test_parallel_first_adds_create_one_cart(file_session_factory):
    service = CartService(file_session_factory)
    owner = CartOwner(user_id="u-1")

    assert _run_in_threads(lambda: service.add_item(owner, product_id="p1", quantity=2)) == []

    with file_session_factory() as s:
        assert s.query(Cart).count() == 1
        line = s.query(CartItem).one()
        assert line.quantity == 2 * THREADS
