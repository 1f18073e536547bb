from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from api.core import csrf
from api.core.config import get_settings
from api.core.rate_limiter import rate_limit_ip
from api.core.utils import safe_next
from api.repositories.backend_client import BackendError, MissingTokenError, describe_error
from api.services.client_factory import backend_for
from api.services.session_service import (
    SESSION_COOKIE_NAME,
    clear_session_cookie,
    delete_session,
    issue_session,
    require_token,
    set_session_cookie,
)

from .common import redirect_to_login, render

router = APIRouter(prefix="", tags=["auth"])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _signed_in(dest: str, bearer_token: str, email: str, request: Request) -> RedirectResponse:
    resp = RedirectResponse(dest, status_code=303)
    delete_session(request.cookies.get(SESSION_COOKIE_NAME))
    set_session_cookie(resp, issue_session(bearer_token, email))
    return resp


@router.post("/auth/login")
def do_login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: str = Form(""),
    csrf_token: str = Form(""),
):
    rate_limit_ip(request, "auth:login", limit=5, window_seconds=60)
    csrf.validate_csrf(request, csrf_token)
    email = email.strip()
    with backend_for(request) as client:
        try:
            token = client.login(email, password)
        except BackendError as exc:
            message = describe_error(exc, "Login failed")
            return render(request, "login.html", {"next": next, "error": message, "email": email}, status_code=400)
    if not token:
        return render(request, "login.html", {"next": next, "error": "Login failed", "email": email}, status_code=400)
    return _signed_in(safe_next(next, "/dashboard"), token, email, request)


@router.post("/auth/register")
def do_register(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    name: str = Form(""),
    company_name: str = Form(""),
    csrf_token: str = Form(""),
):
    rate_limit_ip(request, "auth:register", limit=3, window_seconds=300)
    csrf.validate_csrf(request, csrf_token)
    form = {"email": email.strip(), "name": name.strip(), "company_name": company_name.strip()}
    with backend_for(request) as client:
        try:
            token = client.register(form["email"], password, form["name"], form["company_name"])
        except BackendError as exc:
            message = describe_error(exc, "Registration failed")
            return render(request, "register.html", {"error": message, "form": form}, status_code=400)
    if not token:
        return render(request, "register.html", {"error": "Registration failed", "form": form}, status_code=400)
    return _signed_in("/dashboard", token, form["email"], request)


@router.post("/auth/logout")
def logout(request: Request, csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    delete_session(request.cookies.get(SESSION_COOKIE_NAME))
    resp = RedirectResponse("/", status_code=303)
    clear_session_cookie(resp)
    return resp


@router.get("/change-password", response_class=HTMLResponse)
def change_password_form(request: Request):
    try:
        require_token(request)
    except MissingTokenError:
        return redirect_to_login("/change-password")
    return render(request, "change_password.html")


@router.post("/change-password")
def change_password(
    request: Request,
    old_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    csrf_token: str = Form(""),
):
    csrf.validate_csrf(request, csrf_token)
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login("/change-password")
    error = ""
    if new_password != confirm_password:
        error = "New passwords do not match"
    elif len(new_password) < MIN_PASSWORD_LENGTH:
        error = f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
    if error:
        return render(request, "change_password.html", {"error": error}, status_code=400)
    with backend_for(request, token) as client:
        try:
            client.change_password(old_password, new_password)
        except BackendError as exc:
            message = describe_error(exc, "Failed to update password")
            return render(request, "change_password.html", {"error": message}, status_code=400)
    logger.info("Password changed through the profile page")
    return render(
        request,
        "success.html",
        {
            "title": "Change Password",
            "message": "Password updated successfully!",
            "next_url": "/dashboard",
            # password change lingers slightly longer on the success page
            "delay": get_settings().redirect_delay_seconds + 0.5,
        },
    )
