"""Single-statement find-or-create helpers for carts and cart lines."""

from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.cart import Cart
from ..models.cart_item import CartItem


def dialect_insert(session: Session):
    """Return the dialect ``insert`` construct supporting ON CONFLICT, if any."""

    name = session.get_bind().dialect.name
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    return None


def insert_cart(session: Session, *, session_id: Optional[str] = None, user_id: Optional[str] = None) -> Cart:
    """Create the cart for the given ownership key, or return the one that won the race."""

    if bool(session_id) == bool(user_id):
        raise ValueError("exactly one of session_id / user_id is required")
    key_col, key = ("user_id", user_id) if user_id else ("session_id", session_id)
    session.flush()
    insert = dialect_insert(session)
    if insert is not None:
        stmt = (
            insert(Cart.__table__)
            .values(id=str(uuid4()), session_id=session_id, user_id=user_id)
            .on_conflict_do_nothing(index_elements=[key_col])
        )
        session.execute(stmt)
    else:
        session.add(Cart(id=str(uuid4()), session_id=session_id, user_id=user_id))
        session.flush()
    return session.query(Cart).filter(getattr(Cart, key_col) == key).one()


def upsert_cart_line(
    session: Session,
    *,
    cart_id: str,
    product_id: str,
    quantity: int,
    price: Decimal,
    options: Optional[Dict[str, Any]] = None,
    additive: bool = True,
    refresh_price: bool = True,
) -> CartItem:
    """Insert a line or fold ``quantity`` into the existing (cart, product) line.

    ``additive`` adds to the stored quantity, otherwise it is replaced.
    """

    table = CartItem.__table__
    session.flush()
    insert = dialect_insert(session)
    if insert is not None:
        values = {
            "id": str(uuid4()),
            "cart_id": cart_id,
            "product_id": product_id,
            "quantity": quantity,
            "price": price,
        }
        if options is not None:
            values["options"] = options
        stmt = insert(table).values(**values)
        changes = {
            "quantity": (table.c.quantity + stmt.excluded.quantity) if additive else stmt.excluded.quantity,
            "updated_at": func.now(),
        }
        if refresh_price:
            changes["price"] = stmt.excluded.price
        if options is not None:
            changes["options"] = stmt.excluded.options
        session.execute(stmt.on_conflict_do_update(index_elements=["cart_id", "product_id"], set_=changes))
    else:
        existing = (
            session.query(CartItem)
            .filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
            .with_for_update()
            .first()
        )
        if existing:
            existing.quantity = existing.quantity + quantity if additive else quantity
            if refresh_price:
                existing.price = price
            if options is not None:
                existing.options = options
        else:
            session.add(
                CartItem(
                    id=str(uuid4()),
                    cart_id=cart_id,
                    product_id=product_id,
                    quantity=quantity,
                    price=price,
                    options=options,
                )
            )
        session.flush()
    return (
        session.query(CartItem)
        .populate_existing()
        .filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        .one()
    )
