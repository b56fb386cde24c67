from sqlalchemy import Boolean, Column, DateTime, String, Text, func
from .base import Base


class ContactMessage(Base):
    """A message left through the public contact form."""

    __tablename__ = "contact_message"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
