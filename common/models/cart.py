from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import relationship
from .base import Base


class Cart(Base):
    """A shopping cart owned by exactly one of session_id (guest) or user_id."""

    __tablename__ = "cart"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(64), nullable=True, unique=True)
    user_id = Column(String(128), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.created_at",
    )
