from __future__ import annotations

import io
import logging
from urllib.parse import quote

import qrcode
from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, StreamingResponse

from api.core import csrf
from api.core.config import get_settings
from api.core.utils import absolute_url
from api.domain.cards import card_domain_path, card_id_path, view_links
from api.repositories.backend_client import BackendError, MissingTokenError, describe_error
from api.services.card_view_service import (
    ROUTE_BY_DOMAIN,
    ROUTE_BY_ID,
    CardViewError,
    resolve_card,
)
from api.services.client_factory import backend_for
from api.services.session_service import (
    SESSION_COOKIE_NAME,
    clear_session_cookie,
    current_token,
    delete_session,
    require_token,
)

from .common import redirect_to_login, render

router = APIRouter(prefix="", tags=["cards"])
logger = logging.getLogger(__name__)

NOTICES = {
    "card-deleted": "Visit card deleted successfully!",
}


def _share_url(path: str) -> str:
    return absolute_url(path, base=get_settings().public_base_url)


def _card_page(request: Request, route_kind: str, key: str, share_path: str, qr_path: str):
    token = current_token(request)
    with backend_for(request) as client:
        try:
            view = resolve_card(route_kind, key, token, client)
        except CardViewError as exc:
            status = 404 if exc.status_code == 404 else 502
            return render(request, "card_detail.html", {"view": None, "error": exc.message}, status_code=status)
    card = view.card
    links = []
    if view.is_detailed:
        # owners also get the alternate route for their card
        links = [card_id_path(card)] + ([card_domain_path(card)] if card.domain else [])
    return render(
        request,
        "card_detail.html",
        {
            "view": view,
            "card": card,
            "share_url": _share_url(share_path),
            "qr_src": qr_path,
            "owner_links": links,
        },
    )


@router.get("/company/{card_id:int}", response_class=HTMLResponse)
def company_page(card_id: int, request: Request):
    return _card_page(
        request,
        ROUTE_BY_ID,
        str(card_id),
        f"/company/{card_id}",
        f"/q/company/{card_id}.png",
    )


@router.get("/v/{domain}", response_class=HTMLResponse)
def domain_page(domain: str, request: Request):
    encoded = quote(domain, safe="")
    return _card_page(request, ROUTE_BY_DOMAIN, domain, f"/v/{encoded}", f"/q/v/{encoded}.png")


def _qr_png(payload: str) -> StreamingResponse:
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


@router.get("/q/company/{card_id:int}.png")
def company_qr(card_id: int):
    return _qr_png(_share_url(f"/company/{card_id}"))


@router.get("/q/v/{domain}.png")
def domain_qr(domain: str):
    return _qr_png(_share_url(f"/v/{quote(domain, safe='')}"))


def _expire_and_login(request: Request, next_path: str) -> RedirectResponse:
    delete_session(request.cookies.get(SESSION_COOKIE_NAME))
    resp = redirect_to_login(next_path)
    clear_session_cookie(resp)
    return resp


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, notice: str = ""):
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login("/dashboard")
    with backend_for(request, token) as client:
        try:
            user = client.get_profile()
            cards = client.my_cards()
        except BackendError as exc:
            logger.warning("Dashboard load failed, dropping session: %s", exc.message)
            return _expire_and_login(request, "/dashboard")
    rows = [(card, view_links(card, user.role)) for card in cards]
    return render(
        request,
        "dashboard.html",
        {"user": user, "rows": rows, "success": NOTICES.get(notice, "")},
    )


@router.get("/dashboard/cards/{card_id:int}/delete", response_class=HTMLResponse)
def confirm_delete_card(card_id: int, request: Request):
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login(f"/dashboard/cards/{card_id}/delete")
    title = ""
    error = ""
    with backend_for(request, token) as client:
        try:
            title = client.card_detail(card_id).title
        except BackendError as exc:
            error = describe_error(exc, "Failed to load visit card")
    return render(
        request,
        "confirm_delete.html",
        {
            "subject": title or f"visit card #{card_id}",
            "action": f"/dashboard/cards/{card_id}/delete",
            "cancel_url": "/dashboard",
            "error": error,
        },
    )


@router.post("/dashboard/cards/{card_id:int}/delete")
def delete_card(card_id: int, request: Request, confirm: str = Form(""), csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    if confirm != "yes":
        return RedirectResponse(f"/dashboard/cards/{card_id}/delete", status_code=303)
    try:
        token = require_token(request)
    except MissingTokenError:
        return redirect_to_login("/dashboard")
    with backend_for(request, token) as client:
        try:
            client.delete_card(card_id)
        except BackendError as exc:
            message = describe_error(exc, "Failed to delete visit card")
            return render(
                request,
                "confirm_delete.html",
                {
                    "subject": f"visit card #{card_id}",
                    "action": f"/dashboard/cards/{card_id}/delete",
                    "cancel_url": "/dashboard",
                    "error": message,
                },
                status_code=400,
            )
    logger.info("Card %s deleted by its owner", card_id)
    return RedirectResponse("/dashboard?notice=card-deleted", status_code=303)
