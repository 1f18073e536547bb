from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from api.core.config import get_settings
from api.domain.cards import view_links
from api.repositories.backend_client import BackendError, describe_error
from api.services.client_factory import backend_for
from api.services.directory_service import DirectoryQuery, DirectoryService
from api.services.session_service import current_token

from .common import render

router = APIRouter(prefix="", tags=["pages"])
logger = logging.getLogger(__name__)


def _viewer_role(request: Request) -> str:
    """Role from the profile endpoint; anonymous when signed out or on failure."""
    token = current_token(request)
    if not token:
        return ""
    with backend_for(request, token) as client:
        try:
            return client.get_profile().role
        except BackendError as exc:
            logger.info("Profile lookup for directory failed: %s", exc.message)
            return ""


@router.get("/", response_class=HTMLResponse)
def home(request: Request, page: int = 1, search: str = ""):
    settings = get_settings()
    query = DirectoryQuery(page_size=settings.page_size).with_search(search).at_page(page)
    role = _viewer_role(request)
    result = None
    error = ""
    with backend_for(request) as client:
        try:
            result = DirectoryService(client).fetch(query)
        except BackendError as exc:
            error = describe_error(exc, "Failed to load companies")
    rows = []
    if result:
        rows = [(card, view_links(card, role)) for card in result.cards]
    return render(
        request,
        "home.html",
        {"query": query, "result": result, "rows": rows, "error": error, "viewer_role": role},
    )


@router.get("/login", response_class=HTMLResponse)
def login(request: Request, next: str = "", error: str = ""):
    return render(request, "login.html", {"next": next, "error": error})


@router.get("/register", response_class=HTMLResponse)
def register(request: Request, error: str = ""):
    return render(request, "register.html", {"error": error, "form": {}})


# Silence Chrome devtools probes (avoids noisy 404s in logs)
@router.get("/.well-known/appspecific/com.chrome.devtools.json")
def chrome_devtools_wellknown():
    return PlainTextResponse("", status_code=204)
