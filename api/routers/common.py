"""Rendering helpers shared by the public routers."""
from __future__ import annotations

from urllib.parse import quote_plus

from fastapi import Request
from fastapi.responses import RedirectResponse

from api.core import csrf
from api.core.config import get_settings
from api.services.session_service import current_session


def templates(request: Request):
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates not configured")


def render(request: Request, name: str, context: dict | None = None, status_code: int = 200):
    """TemplateResponse with session, settings and a fresh CSRF cookie in the context."""
    settings = get_settings()
    token = csrf.ensure_csrf_token(request)
    ctx = {
        "request": request,
        "session": current_session(request),
        "settings": settings,
        "csrf_token": token,
        "error": "",
        "success": "",
    }
    if context:
        ctx.update(context)
    response = templates(request).TemplateResponse(request, name, ctx, status_code=status_code)
    csrf.set_csrf_cookie(response, token)
    return response


def redirect_to_login(next_path: str = "") -> RedirectResponse:
    dest = "/login"
    if next_path:
        dest += f"?next={quote_plus(next_path)}"
    return RedirectResponse(dest, status_code=303)
