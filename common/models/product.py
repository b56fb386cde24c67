from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


class Product(Base):
    __tablename__ = "product"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    long_description = Column(Text, nullable=True)
    price = Column(Numeric(14, 2), nullable=False)
    sale_price = Column(Numeric(14, 2), nullable=True)
    in_stock = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    # ordered list of {"url": ..., "alt": ...}; the first entry is the primary image
    images = Column(JSON, nullable=True)
    specs = Column(Text, nullable=True)
    category_id = Column(String(36), ForeignKey("category.id"), nullable=True)
    meta_title = Column(String(255), nullable=True)
    meta_description = Column(Text, nullable=True)
    meta_keywords = Column(String(512), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    category = relationship("Category")
