from sqlalchemy import Column, DateTime, Integer, JSON, String, Text, func
from .base import Base


class TeamMember(Base):
    __tablename__ = "team_member"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    position = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    image_url = Column(String(512), nullable=True)
    # {"facebook": "https://...", "zalo": "..."}
    social_links = Column(JSON(none_as_null=True), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
