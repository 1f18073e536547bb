import hashlib
import logging
import os
import pathlib
import shutil
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from api.core.config import get_settings
from api.core.log import configure_logging
from api.db.create_tables import create_all
from api.routers import auth as auth_router
from api.routers import card_edit as card_edit_router
from api.routers import cards as cards_router
from api.routers import pages as pages_router
from api.services.card_display import install_filters

logger = logging.getLogger(__name__)

BASE = os.path.dirname(__file__)
WEB = os.path.join(BASE, "..", "web")
TEMPLATES = os.path.join(BASE, "..", "templates")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool, img_sources: str = "") -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts
        self._img_sources = img_sources

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        img_src = " ".join(part for part in ("'self' data:", self._img_sources) if part)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; "
            f"img-src {img_src}; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self' 'unsafe-inline'",
        )
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class CachedStaticFiles(StaticFiles):
    def set_headers(self, scope, resp, path, stat_result):
        # fingerprinted assets never change under the same name
        resp.headers["Cache-Control"] = "public, max-age=31536000, immutable"


def _fingerprint_asset(rel_path: str) -> str:
    """
    Copy an asset to a name carrying a short content hash: "card.css" -> "card.<hash8>.css".
    Returns the versioned file name (without /static).
    """
    src = pathlib.Path(WEB) / rel_path
    if not src.exists():
        return rel_path.replace("\\", "/")
    data = src.read_bytes()
    h = hashlib.sha1(data).hexdigest()[:8]
    dst = src.with_name(f"{src.stem}.{h}{src.suffix}")
    if not dst.exists():
        shutil.copy2(src, dst)
    return dst.name


def _css_href() -> str:
    try:
        return f"/static/{_fingerprint_asset('card.css')}"
    except OSError as exc:
        logger.warning("Could not fingerprint card.css: %s", exc)
        return "/static/card.css"


def build_templates(css_href: str) -> Jinja2Templates:
    templates = Jinja2Templates(directory=TEMPLATES)
    install_filters(templates)
    templates.env.globals["css_href"] = css_href
    return templates


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all()
    yield


def create_app() -> FastAPI:
    """Public site: directory, card pages, owner dashboard and author form."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Visit Card Directory", lifespan=lifespan)
    app.mount("/static", CachedStaticFiles(directory=WEB), name="static")
    css_href = _css_href()
    app.state.css_href = css_href
    app.state.templates = build_templates(css_href)
    # tests swap in an httpx.MockTransport here
    app.state.backend_transport = None

    allowed_cors = {settings.public_base_url, settings.admin_base_url}
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:8000", "http://127.0.0.1:8000"})
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(
        SecurityHeadersMiddleware,
        enforce_hsts=settings.app_env == "prod",
        img_sources=settings.backend_url,
    )

    @app.get("/favicon.ico")
    def favicon():
        ico_path = os.path.join(WEB, "favicon.ico")
        if os.path.exists(ico_path):
            return FileResponse(ico_path, media_type="image/x-icon")
        return Response(status_code=204)

    app.include_router(auth_router.router)
    app.include_router(pages_router.router)
    app.include_router(card_edit_router.router)
    app.include_router(cards_router.router)
    logger.info("Public app ready (backend=%s)", settings.backend_url)
    return app


app = create_app()
