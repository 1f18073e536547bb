"""Double-submit CSRF protection for HTML form posts.

The token lives in a readable cookie and is echoed back in a hidden form
field (or the ``X-CSRF-Token`` header). Posts whose Origin/Referer points at
a host other than the one serving the page, or at one of the configured
site URLs, are refused as well.
"""
from __future__ import annotations

import html
import secrets
from urllib import parse as urlparse

from fastapi import HTTPException, Request, Response

from api.core.config import get_settings

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_FIELD_NAME = "csrf_token"
CSRF_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


def ensure_csrf_token(request: Request) -> str:
    """Reuse the browser's token when it looks sane, otherwise mint one."""
    existing = request.cookies.get(CSRF_COOKIE_NAME) or ""
    return existing if len(existing) >= 16 else secrets.token_urlsafe(32)


def csrf_field(token: str) -> str:
    """Hidden input carrying the token, for forms built as HTML strings."""
    return f"<input type='hidden' name='{CSRF_FIELD_NAME}' value='{html.escape(token)}'>"


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_COOKIE_MAX_AGE,
        httponly=False,
        secure=get_settings().app_env == "prod",
        samesite="strict",
        path="/",
    )


def _trusted_hosts(request: Request) -> set[str]:
    settings = get_settings()
    hosts = {(request.headers.get("host") or "").split(":", 1)[0].lower()}
    for url in (settings.public_base_url, settings.admin_base_url):
        hosts.add((urlparse.urlparse(url).hostname or "").lower())
    hosts.discard("")
    return hosts


def _validate_origin(request: Request) -> None:
    source = request.headers.get("origin") or request.headers.get("referer") or ""
    if not source:
        return
    try:
        parsed = urlparse.urlparse(source)
    except ValueError:
        raise HTTPException(403, "Invalid origin.")
    if parsed.hostname and parsed.hostname.lower() not in _trusted_hosts(request):
        raise HTTPException(403, "Invalid origin.")
    if parsed.scheme and parsed.scheme != request.url.scheme:
        raise HTTPException(403, "Invalid origin.")


def validate_csrf(request: Request, supplied_token: str | None) -> None:
    """Raise 403 unless the posted token matches the cookie."""
    expected = request.cookies.get(CSRF_COOKIE_NAME) or ""
    posted = (supplied_token or request.headers.get(CSRF_HEADER_NAME) or "").strip()
    if not expected or not posted:
        raise HTTPException(403, "Missing CSRF token.")
    if not secrets.compare_digest(expected, posted):
        raise HTTPException(403, "Invalid CSRF token.")
    _validate_origin(request)
