from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from api.core import csrf
from api.core.config import get_settings
from api.domain.cards import BOT_TOKEN_HTML_PATTERN, LOGO_CONTENT_TYPES, CardValidationError
from api.domain.models import VisitCard
from api.repositories.backend_client import (
    BackendError,
    LogoUploadError,
    MissingTokenError,
    describe_error,
)
from api.services.card_display import render_markdown
from api.services.card_form_service import CardForm, CardFormService, LogoFile
from api.services.client_factory import backend_for
from api.services.session_service import require_token

from .common import redirect_to_login, render

router = APIRouter(prefix="", tags=["card-edit"])
logger = logging.getLogger(__name__)


def read_logo(upload: Optional[UploadFile], max_bytes: Optional[int] = None) -> Optional[LogoFile]:
    """Reads at most ``max_bytes + 1`` bytes; anything longer fails the size check."""
    # an untouched file input still posts an empty part without a filename
    if upload is None or not upload.filename:
        return None
    limit = get_settings().max_logo_bytes if max_bytes is None else max_bytes
    data = upload.file.read(limit + 1)
    return LogoFile(upload.filename, upload.content_type or "", data)


def form_context(
    form: CardForm,
    *,
    card_id: Optional[int] = None,
    card: Optional[VisitCard] = None,
    action: str = "",
    cancel_url: str = "/dashboard",
    logo_delete_url: str = "",
) -> dict:
    """Template context for card_form.html, limits included for the browser checks."""
    settings = get_settings()
    action = action or (f"/edit-visit-card/{card_id}" if card_id else "/create-visit-card")
    return {
        "form": form,
        "card": card,
        "card_id": card_id,
        "mode": "edit" if card_id else "create",
        "action": action,
        "logo_delete_url": logo_delete_url or (f"/edit-visit-card/{card_id}/logo/delete" if card_id else ""),
        "cancel_url": cancel_url,
        "max_logo_bytes": settings.max_logo_bytes,
        "max_logo_mb": f"{settings.max_logo_bytes / (1024 * 1024):g}",
        "logo_types": sorted(LOGO_CONTENT_TYPES),
        "bot_token_pattern": BOT_TOKEN_HTML_PATTERN,
        "preview_html": "",
    }


def _form_page(request: Request, ctx: dict, error: str = "", status_code: int = 200):
    ctx = dict(ctx, error=error)
    return render(request, "card_form.html", ctx, status_code=status_code)


def _saved_page(request: Request, created: bool):
    message = "Visit card created successfully!" if created else "Visit card updated successfully!"
    return render(
        request,
        "success.html",
        {
            "title": "Visit Card",
            "message": message,
            "next_url": "/dashboard",
            "delay": get_settings().redirect_delay_seconds,
        },
    )


def _submit(
    request: Request,
    token: str,
    form: CardForm,
    logo: Optional[LogoFile],
    card_id: Optional[int],
    action: str,
):
    card: Optional[VisitCard] = None
    with backend_for(request, token) as client:
        service = CardFormService(client, get_settings().max_logo_bytes)
        if action == "preview":
            ctx = form_context(form, card_id=card_id)
            ctx["preview_html"] = render_markdown(form.description)
            return _form_page(request, ctx)
        try:
            result = service.submit(form, logo, card_id)
        except CardValidationError as exc:
            return _form_page(request, form_context(form, card_id=card_id), exc.message, 400)
        except LogoUploadError as exc:
            # the text fields are stored; further saves must update that card
            return _form_page(request, form_context(form, card_id=exc.card_id or card_id), exc.message, 400)
        except MissingTokenError:
            return redirect_to_login(request.url.path)
        except BackendError as exc:
            if card_id:
                try:
                    card = client.card_detail(card_id)
                except BackendError:
                    card = None
            message = describe_error(exc, "Failed to save visit card")
            return _form_page(request, form_context(form, card_id=card_id, card=card), message, 400)
    return _saved_page(request, result.created)


@router.get("/create-visit-card", response_class=HTMLResponse)
def create_form(request: Request):
    try:
        require_token(request)
    except MissingTokenError:
        return redirect_to_login("/create-visit-card")
    return _form_page(request, form_context(CardForm()))


@router.post("/create-visit-card")
def create_card(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    domain: str = Form(""),
    telegram_bot_token: str = Form(""),
    action: str = Form("save"),
    logo: Optional[UploadFile] = File(None),
    csrf_token: str = Form(""),
):
    csrf.validate_csrf(request, csrf_token)
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login("/create-visit-card")
    form = CardForm(title, description, domain, telegram_bot_token)
    return _submit(request, token, form, read_logo(logo), None, action)


@router.get("/edit-visit-card/{card_id:int}", response_class=HTMLResponse)
def edit_form(card_id: int, request: Request):
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login(f"/edit-visit-card/{card_id}")
    with backend_for(request, token) as client:
        try:
            card = client.card_detail(card_id)
        except BackendError as exc:
            message = describe_error(exc, "Failed to load visit card")
            ctx = form_context(CardForm(), card_id=card_id)
            ctx["load_failed"] = True
            return _form_page(request, ctx, message, 404 if exc.status_code == 404 else 502)
    return _form_page(request, form_context(CardForm.from_card(card), card_id=card_id, card=card))


@router.post("/edit-visit-card/{card_id:int}")
def update_card(
    card_id: int,
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    domain: str = Form(""),
    telegram_bot_token: str = Form(""),
    action: str = Form("save"),
    logo: Optional[UploadFile] = File(None),
    csrf_token: str = Form(""),
):
    csrf.validate_csrf(request, csrf_token)
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login(f"/edit-visit-card/{card_id}")
    form = CardForm(title, description, domain, telegram_bot_token)
    return _submit(request, token, form, read_logo(logo), card_id, action)


@router.post("/edit-visit-card/{card_id:int}/logo/delete")
def delete_logo(card_id: int, request: Request, csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login(f"/edit-visit-card/{card_id}")
    with backend_for(request, token) as client:
        try:
            CardFormService(client).remove_logo(card_id)
        except BackendError as exc:
            message = describe_error(exc, "Failed to delete logo")
            try:
                card = client.card_detail(card_id)
            except BackendError:
                card = None
            form = CardForm.from_card(card) if card else CardForm()
            return _form_page(request, form_context(form, card_id=card_id, card=card), message, 400)
    return RedirectResponse(f"/edit-visit-card/{card_id}", status_code=303)
