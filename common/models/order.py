from sqlalchemy import Column, DateTime, JSON, Numeric, String, Text, func
from .base import Base


class Order(Base):
    __tablename__ = "order"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(64), nullable=True)
    user_id = Column(String(128), nullable=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    address = Column(String(512), nullable=False)
    city = Column(String(128), nullable=False)
    district = Column(String(128), nullable=True)
    ward = Column(String(128), nullable=True)
    note = Column(Text, nullable=True)
    items = Column(JSON, nullable=False)
    subtotal = Column(Numeric(14, 2), nullable=False)
    total = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(32), nullable=False)
    request_id = Column(String(128), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
