"""Bearer session token model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.database import Base


class SessionToken(Base):
    """Opaque bearer credential. Expires after a period of inactivity, measured from last_used_at."""

    __tablename__ = "session_token"

    token = Column(String(256), primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    last_used_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
