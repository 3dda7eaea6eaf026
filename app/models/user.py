"""User model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class User(Base):
    """Registered account. New accounts stay inactive until the activation token is redeemed."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(32), unique=True, nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    inactive = Column(Boolean, nullable=False, default=True)
    activation_token = Column(String(256), nullable=True, index=True)
    password_reset_token = Column(String(256), nullable=True, index=True)
    image = Column(String(256), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
