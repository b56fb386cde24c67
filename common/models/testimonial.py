from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text, func
from .base import Base


class Testimonial(Base):
    __tablename__ = "testimonial"
    __table_args__ = (CheckConstraint("rating BETWEEN 1 AND 5", name="ck_testimonial_rating"),)

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    position = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False, default=5)
    image_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
