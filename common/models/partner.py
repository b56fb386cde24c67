from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from .base import Base


class Partner(Base):
    __tablename__ = "partner"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(512), nullable=False)
    website = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
