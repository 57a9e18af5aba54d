from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.models.base import Base


class PortalSession(Base):
    __tablename__ = "portal_sessions"

    id = Column(Integer, primary_key=True, index=True)
    autonomous_roll_no = Column(String, nullable=False, index=True)
    backend_token = Column(Text, nullable=False)
    user_snapshot = Column(Text, nullable=False)  # JSON of the upstream user object
    created_at = Column(DateTime, default=datetime.utcnow)
    last_seen_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
