from typing import Any, Dict, Mapping, Optional
from uuid import uuid4
from decimal import Decimal

from sqlalchemy.orm import joinedload

from ..models.cart_item import CartItem
from ..models.order import Order
from ..models.product import Product
from ..utils.dto import to_order_dto
from ..utils.pagination import normalize_paging
from ..utils.pricing import effective_unit_price, money
from ..utils.validators import optional_str, require_fields
from .cart_identity import CartIdentityResolver, CartOwner
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .logging import log_event


REQUIRED_ADDRESS_FIELDS = ("name", "phone", "address", "city")


def owns_order(order: Order, owner: CartOwner) -> bool:
    if owner.user_id:
        return order.user_id == owner.user_id
    if owner.session_id:
        return order.session_id == owner.session_id
    return False


class OrderService:
    """Checkout handoff and order retrieval backed by DB."""

    def __init__(self, session_factory, currency: str = "VND", resolver: Optional[CartIdentityResolver] = None):
        self._session_factory = session_factory
        self._currency = currency
        self._resolver = resolver or CartIdentityResolver()

    def checkout(self, owner: CartOwner, data: Mapping[str, Any], request_id: Optional[str] = None) -> Dict:
        """Turn the caller's cart into a PENDING order and delete the cart.

        A repeated ``request_id`` from the same owner returns the order created
        the first time; the same key from anyone else is a Conflict.
        """

        fields = require_fields(data, REQUIRED_ADDRESS_FIELDS, "Vui lòng nhập đầy đủ thông tin giao hàng")
        request_id = optional_str(request_id)
        with self._session_factory() as session:
            if request_id:
                existing = session.query(Order).filter(Order.request_id == request_id).first()
                if existing:
                    if not owns_order(existing, owner):
                        raise ConflictError("Mã yêu cầu đã được sử dụng")
                    return to_order_dto(existing)
            cart = self._resolver.find(session, owner).cart if not owner.is_empty else None
            items = []
            if cart is not None:
                items = (
                    session.query(CartItem)
                    .options(joinedload(CartItem.product))
                    .filter(CartItem.cart_id == cart.id)
                    .order_by(CartItem.created_at, CartItem.id)
                    .all()
                )
            if not items:
                raise InvalidArgumentError("Giỏ hàng trống")

            subtotal = Decimal("0")
            snapshot = []
            for it in items:
                prod: Product = it.product
                unit = effective_unit_price(prod.price, prod.sale_price)
                subtotal += unit * it.quantity
                snapshot.append(
                    {
                        "productId": it.product_id,
                        "name": prod.name,
                        "quantity": it.quantity,
                        "price": money(unit),
                        "snapshotPrice": money(it.price),
                        "options": it.options,
                    }
                )
            order = Order(
                id=str(uuid4()),
                session_id=None if owner.user_id else owner.session_id,
                user_id=owner.user_id,
                customer_name=fields["name"],
                customer_phone=fields["phone"],
                address=fields["address"],
                city=fields["city"],
                district=optional_str(data.get("district")),
                ward=optional_str(data.get("ward")),
                note=optional_str(data.get("note")),
                items=snapshot,
                subtotal=subtotal,
                total=subtotal,
                currency=self._currency,
                status="PENDING",
                request_id=request_id,
            )
            session.add(order)
            # one-way: the cart and its lines go away with the order in one transaction
            session.delete(cart)
            session.flush()
            log_event("info", "order.created", order_id=order.id, cart_id=cart.id, items=len(items), total=money(subtotal))
            return to_order_dto(order)

    @staticmethod
    def _load(session, order_id: str) -> Order:
        o = session.query(Order).filter(Order.id == order_id).first() if order_id else None
        if not o:
            raise NotFoundError("Không tìm thấy đơn hàng")
        return o

    def get_order(self, order_id: str) -> Dict:
        """Unscoped lookup for the back office."""
        with self._session_factory() as session:
            return to_order_dto(self._load(session, order_id))

    def get_order_for(self, owner: CartOwner, order_id: str, phone: Optional[str] = None) -> Dict:
        """Order as seen by a shopper: their own orders, or any order whose phone they know.

        Guests lose their cart cookie at checkout, so the phone number given on
        the order is accepted as proof of ownership. A foreign order is reported
        as missing.
        """

        phone = optional_str(phone)
        with self._session_factory() as session:
            o = self._load(session, order_id)
            if not owns_order(o, owner) and (phone is None or phone != o.customer_phone):
                raise NotFoundError("Không tìm thấy đơn hàng")
            return to_order_dto(o)

    def list_orders(self, *, status: Optional[str] = None, page: Any = 1, page_size: Any = 20) -> Dict:
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Order)
            if status:
                q = q.filter(Order.status == status)
            total = q.count()
            rows = q.order_by(Order.created_at.desc()).offset((p - 1) * ps).limit(ps).all()
            return {"items": [to_order_dto(r) for r in rows], "page": p, "page_size": ps, "total": total}
