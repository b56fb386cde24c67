from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


class Service(Base):
    """A workshop service offering (oil change, maintenance package, ...)."""

    __tablename__ = "service"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(14, 2), nullable=True)
    image_url = Column(String(512), nullable=True)
    category_id = Column(String(36), ForeignKey("category.id"), nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    category = relationship("Category")
