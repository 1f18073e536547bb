"""Create the session store schema and drop sessions that already expired.

Run directly (``python -m api.db.create_tables``) or let the apps do it at startup.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from api.repositories.sql_repository import SQLRepository

from . import models  # noqa: F401  (registers the tables on Base)
from .session import Base, get_engine

logger = logging.getLogger(__name__)


def create_all(purge_expired: bool = True) -> None:
    Base.metadata.create_all(bind=get_engine())
    if not purge_expired:
        return
    purged = SQLRepository().purge_expired_sessions()
    if purged:
        logger.info("Purged %d expired sessions", purged)


if __name__ == "__main__":
    try:
        create_all()
        print("Session store ready.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to prepare the session store: {exc}") from exc
