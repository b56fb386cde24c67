"""Map a caller to the cart it owns.

A caller is either a signed-in user (``user_id`` from the auth session) or an
anonymous visitor carrying the opaque ``cart_session_id`` cookie. The user id
always wins; a guest cart still referenced by the cookie is folded into the
user's cart the first time the signed-in user touches the cart.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ..db.upsert import insert_cart, upsert_cart_line
from ..models.cart import Cart
from .logging import log_event


@dataclass(frozen=True)
class CartOwner:
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def is_empty(self) -> bool:
        return not self.user_id and not self.session_id

    @property
    def has_guest_token(self) -> bool:
        """True when a guest cookie accompanies a signed-in user and should be retired."""
        return bool(self.user_id and self.session_id)


@dataclass
class ResolvedCart:
    cart: Optional[Cart]
    new_session_id: Optional[str] = None
    guest_merged: bool = False


def resolve_cart_owner(session_token: Optional[str], user_id: Optional[str]) -> CartOwner:
    token = (session_token or "").strip() or None
    uid = str(user_id).strip() if user_id is not None else ""
    return CartOwner(user_id=uid or None, session_id=token)


def new_session_token() -> str:
    return str(uuid4())


class CartIdentityResolver:
    """Locates, lazily creates and merges carts for a ``CartOwner``."""

    def find(self, session: Session, owner: CartOwner) -> ResolvedCart:
        if owner.user_id:
            user_cart = self._by_user(session, owner.user_id)
            if owner.session_id:
                guest = self._by_session(session, owner.session_id)
                if guest is not None and (user_cart is None or guest.id != user_cart.id):
                    return ResolvedCart(self._merge(session, guest, user_cart, owner.user_id), guest_merged=True)
            return ResolvedCart(user_cart)
        if owner.session_id:
            return ResolvedCart(self._by_session(session, owner.session_id))
        return ResolvedCart(None)

    def find_or_create(self, session: Session, owner: CartOwner) -> ResolvedCart:
        resolved = self.find(session, owner)
        if resolved.cart is not None:
            return resolved
        if owner.user_id:
            cart = insert_cart(session, user_id=owner.user_id)
            log_event("info", "cart.created", cart_id=cart.id, owner="user")
            return ResolvedCart(cart)
        # unknown or missing cookie: always mint a fresh token
        token = new_session_token()
        cart = insert_cart(session, session_id=token)
        log_event("info", "cart.created", cart_id=cart.id, owner="session")
        return ResolvedCart(cart, new_session_id=token)

    @staticmethod
    def _by_user(session: Session, user_id: str) -> Optional[Cart]:
        return session.query(Cart).filter(Cart.user_id == user_id).first()

    @staticmethod
    def _by_session(session: Session, session_id: str) -> Optional[Cart]:
        return session.query(Cart).filter(Cart.session_id == session_id).first()

    def _merge(self, session: Session, guest: Cart, user_cart: Optional[Cart], user_id: str) -> Cart:
        if user_cart is None:
            # adopt: the guest cart becomes the user's cart
            guest.user_id = user_id
            guest.session_id = None
            session.flush()
            log_event("info", "cart.guest_merged", cart_id=guest.id, adopted=True, items=len(guest.items))
            return guest

        moved = 0
        for item in list(guest.items):
            upsert_cart_line(
                session,
                cart_id=user_cart.id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                options=item.options,
                additive=True,
                refresh_price=False,
            )
            moved += 1
        session.delete(guest)
        session.flush()
        log_event("info", "cart.guest_merged", cart_id=user_cart.id, guest_cart_id=guest.id, items=moved)
        return user_cart
