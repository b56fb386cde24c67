from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from .base import Base


class CartItem(Base):
    __tablename__ = "cart_item"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_item_cart_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity_positive"),
    )

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), ForeignKey("cart.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # unit price at the time of add; display totals use live product prices
    price = Column(Numeric(14, 2), nullable=False)
    options = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
