from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..db.upsert import upsert_cart_line
from ..models.cart import Cart
from ..models.cart_item import CartItem
from ..models.product import Product
from ..utils.dto import to_cart_product_dto
from ..utils.pricing import effective_unit_price, money
from ..utils.validators import MAX_QUANTITY, parse_quantity, validate_options
from .cart_identity import CartIdentityResolver, CartOwner
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .logging import log_event


EMPTY_CART = {"items": [], "total": 0}


def project_cart(cart: Optional[Cart], items: List[CartItem]) -> Dict:
    """Read view of a cart, priced from the live catalog.

    ``price`` on each line is the snapshot taken when it was added; ``total``
    always uses the product's current effective unit price.
    """

    if cart is None:
        return dict(EMPTY_CART, items=[])
    total = Decimal("0")
    lines = []
    for it in items:
        unit = effective_unit_price(it.product.price, it.product.sale_price)
        line_total = unit * it.quantity
        total += line_total
        lines.append(
            {
                "id": it.id,
                "quantity": it.quantity,
                "price": money(it.price),
                "productId": it.product_id,
                "options": it.options,
                "product": to_cart_product_dto(it.product),
                "total": money(line_total),
            }
        )
    return {"id": cart.id, "items": lines, "total": money(total), "itemCount": len(lines)}


def _to_item_dto(it: CartItem) -> Dict:
    return {
        "id": it.id,
        "cartId": it.cart_id,
        "productId": it.product_id,
        "quantity": it.quantity,
        "price": money(it.price),
        "options": it.options,
    }


class CartService:
    """Cart operations backed by DB.

    Every mutating call returns ``{"cart": <projection>, "cart_item": ...,
    "new_session_id": ..., "guest_merged": ...}`` so the caller can render
    totals and issue the ownership cookie without a second round trip.
    """

    def __init__(self, session_factory, resolver: Optional[CartIdentityResolver] = None):
        self._session_factory = session_factory
        self._resolver = resolver or CartIdentityResolver()

    @staticmethod
    def _items(session: Session, cart_id: str) -> List[CartItem]:
        return (
            session.query(CartItem)
            .populate_existing()
            .options(joinedload(CartItem.product).joinedload(Product.category))
            .filter(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at, CartItem.id)
            .all()
        )

    def _snapshot(self, session: Session, cart: Optional[Cart]) -> Dict:
        if cart is None:
            return project_cart(None, [])
        return project_cart(cart, self._items(session, cart.id))

    @staticmethod
    def _require_product_id(product_id: Any) -> str:
        pid = str(product_id).strip() if product_id is not None else ""
        if not pid:
            raise InvalidArgumentError("Thiếu ID sản phẩm")
        return pid

    @staticmethod
    def _load_product(session: Session, product_id: str) -> Product:
        prod = session.query(Product).filter(Product.id == product_id).first()
        if not prod:
            raise NotFoundError("Sản phẩm không tồn tại")
        return prod

    def get_cart(self, owner: CartOwner) -> Dict:
        if owner.is_empty:
            return {"cart": project_cart(None, []), "guest_merged": False}
        with self._session_factory() as session:
            resolved = self._resolver.find(session, owner)
            return {"cart": self._snapshot(session, resolved.cart), "guest_merged": resolved.guest_merged}

    def add_item(self, owner: CartOwner, *, product_id: Any, quantity: Any = None, options: Any = None) -> Dict:
        pid = self._require_product_id(product_id)
        qnty = parse_quantity(quantity, default=1)
        opts = validate_options(options)
        with self._session_factory() as session:
            prod = self._load_product(session, pid)
            if not prod.in_stock:
                # the cart contract reports out-of-stock as a plain 400
                raise ConflictError("Sản phẩm đã hết hàng", status_code=400)
            resolved = self._resolver.find_or_create(session, owner)
            item = upsert_cart_line(
                session,
                cart_id=resolved.cart.id,
                product_id=pid,
                quantity=qnty,
                price=effective_unit_price(prod.price, prod.sale_price),
                options=opts,
                additive=True,
            )
            if item.quantity > MAX_QUANTITY:
                # raising rolls the upsert back
                raise InvalidArgumentError(f"Số lượng tối đa là {MAX_QUANTITY}")
            log_event("info", "cart.item_added", cart_id=resolved.cart.id, product_id=pid, quantity=qnty, line_quantity=item.quantity)
            return {
                "cart": self._snapshot(session, resolved.cart),
                "cart_item": _to_item_dto(item),
                "new_session_id": resolved.new_session_id,
                "guest_merged": resolved.guest_merged,
            }

    def update_item(self, owner: CartOwner, *, product_id: Any, quantity: Any) -> Dict:
        """Replace the line quantity; a missing line is created with it."""

        pid = self._require_product_id(product_id)
        qnty = parse_quantity(quantity)
        with self._session_factory() as session:
            prod = self._load_product(session, pid)
            resolved = self._resolver.find_or_create(session, owner)
            exists = (
                session.query(CartItem.id)
                .filter(CartItem.cart_id == resolved.cart.id, CartItem.product_id == pid)
                .first()
                is not None
            )
            if not exists and not prod.in_stock:
                raise ConflictError("Sản phẩm đã hết hàng", status_code=400)
            item = upsert_cart_line(
                session,
                cart_id=resolved.cart.id,
                product_id=pid,
                quantity=qnty,
                price=effective_unit_price(prod.price, prod.sale_price),
                additive=False,
            )
            log_event("info", "cart.item_updated", cart_id=resolved.cart.id, product_id=pid, quantity=qnty)
            return {
                "cart": self._snapshot(session, resolved.cart),
                "cart_item": _to_item_dto(item),
                "new_session_id": resolved.new_session_id,
                "guest_merged": resolved.guest_merged,
            }

    def remove_item(self, owner: CartOwner, *, product_id: Any) -> Dict:
        pid = self._require_product_id(product_id)
        if owner.is_empty:
            return {"cart": project_cart(None, []), "removed": 0, "guest_merged": False}
        with self._session_factory() as session:
            resolved = self._resolver.find(session, owner)
            removed = 0
            if resolved.cart is not None:
                removed = (
                    session.query(CartItem)
                    .filter(CartItem.cart_id == resolved.cart.id, CartItem.product_id == pid)
                    .delete(synchronize_session="fetch")
                )
                log_event("info", "cart.item_removed", cart_id=resolved.cart.id, product_id=pid, removed=removed)
            return {"cart": self._snapshot(session, resolved.cart), "removed": removed, "guest_merged": resolved.guest_merged}

    def clear(self, owner: CartOwner) -> Dict:
        if owner.is_empty:
            return {"cart": project_cart(None, []), "removed": 0, "guest_merged": False}
        with self._session_factory() as session:
            resolved = self._resolver.find(session, owner)
            removed = 0
            if resolved.cart is not None:
                removed = (
                    session.query(CartItem)
                    .filter(CartItem.cart_id == resolved.cart.id)
                    .delete(synchronize_session="fetch")
                )
                log_event("info", "cart.cleared", cart_id=resolved.cart.id, removed=removed)
            return {"cart": self._snapshot(session, resolved.cart), "removed": removed, "guest_merged": resolved.guest_merged}
