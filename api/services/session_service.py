"""Session helpers (issue tokens, cookies, validation).

The browser only holds an opaque cookie; the backend bearer token and the
role decoded from it live in the SQL session store so they survive page loads.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response

from api.core.config import get_settings
from api.core.security import token_role
from api.repositories.backend_client import MissingTokenError
from api.repositories.sql_repository import SQLRepository

SESSION_COOKIE_NAME = "session"

logger = logging.getLogger(__name__)
_repo = SQLRepository()


@dataclass(frozen=True)
class SessionState:
    token: str
    bearer_token: str
    role: str
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def issue_session(bearer_token: str, email: str = "") -> str:
    """Persist a bearer token (and its display role) and return the cookie value."""
    settings = get_settings()
    ttl = max(60, settings.session_ttl_seconds)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
    role = token_role(bearer_token)
    token = _repo.create_session(bearer_token, role, email, expires_at)
    logger.info("Session issued for %s (role=%s)", email or "<unknown>", role or "-")
    return token


def current_session(request: Request) -> SessionState | None:
    """Return the session bound to the request cookie, if any and not expired."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    entity = _repo.get_session(token)
    if not entity:
        return None
    if entity.expires_at and entity.expires_at < datetime.now(timezone.utc):
        _repo.delete_session(token)
        return None
    return SessionState(
        token=token,
        bearer_token=entity.bearer_token,
        role=entity.role or "",
        email=entity.email or "",
    )


def current_token(request: Request) -> str | None:
    state = current_session(request)
    return state.bearer_token if state else None


def require_token(request: Request) -> str:
    """Bearer token for auth-only endpoints; refuses before any request is made."""
    token = current_token(request)
    if not token:
        raise MissingTokenError()
    return token


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="lax",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def delete_session(token: str | None) -> None:
    """Remove a session token from the store."""
    if token:
        _repo.delete_session(token)
