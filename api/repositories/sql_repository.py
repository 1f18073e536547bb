"""Session store access backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete

from api.db.models import UserSession
from api.db.session import get_session


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- sessions --------------------------
    def create_session(self, bearer_token: str, role: str, email: str, expires_at: datetime) -> str:
        token = secrets.token_urlsafe(32)
        entity = UserSession(
            token=token,
            bearer_token=bearer_token,
            role=role or "",
            email=email or "",
            expires_at=expires_at,
            created_at=datetime.now(timezone.utc),
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
        return token

    def get_session(self, token: str) -> Optional[UserSession]:
        if not token:
            return None
        with get_session() as session:
            entity = session.get(UserSession, token)
            if entity is not None:
                entity.expires_at = _aware(entity.expires_at)
            return entity

    def delete_session(self, token: str) -> None:
        if not token:
            return
        with get_session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()

    def purge_expired_sessions(self, now: datetime | None = None) -> int:
        cutoff = now or datetime.now(timezone.utc)
        with get_session() as session:
            result = session.execute(delete(UserSession).where(UserSession.expires_at < cutoff))
            session.commit()
            return int(result.rowcount or 0)
