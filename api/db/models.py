"""SQLAlchemy models for the frontend's own state (login sessions)."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from .session import Base


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    bearer_token = Column(Text, nullable=False)
    role = Column(String(32), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
