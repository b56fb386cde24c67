import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship
from .base import Base


class CategoryType(str, enum.Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"
    NEWS = "NEWS"


class Category(Base):
    __tablename__ = "category"
    __table_args__ = (UniqueConstraint("type", "slug", name="uq_category_type_slug"),)

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(CategoryType, name="category_type"), nullable=False)
    parent_id = Column(String(36), ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    image_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    parent = relationship("Category", remote_side=[id], back_populates="subcategories")
    subcategories = relationship("Category", back_populates="parent", order_by="Category.name")
