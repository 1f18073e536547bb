"""
Page-level tests for the public site with the REST backend faked by httpx.MockTransport.
"""
from __future__ import annotations

import base64
import io
import json
import sys
from pathlib import Path

import httpx
import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.core import config as core_config
from api.core.rate_limiter import reset_limits
from api.db import session as db_session
from api.db.create_tables import create_all
from api.domain.cards import BOT_TOKEN_ERROR
from api.routers.card_edit import read_logo

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def make_jwt(claims: dict) -> str:
    def seg(obj) -> str:
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).decode().rstrip("=")

    return f"{seg({'alg': 'HS256'})}.{seg(claims)}.sig"


USER_TOKEN = make_jwt({"user_id": 1, "role": "user"})
ADMIN_TOKEN = make_jwt({"user_id": 2, "role": "admin"})


class FakeBackend:
    """Canned responses keyed by (method, path); unknown routes answer 404."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, dict]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, status: int = 200, body: dict | None = None) -> None:
        self.routes[(method, path)] = (status, body or {})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"error": "Not found"}))
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture()
def site(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'sessions.db'}")
    monkeypatch.setenv("BACKEND_URL", "http://backend.test")
    monkeypatch.delenv("APP_ENV", raising=False)
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    reset_limits()
    create_all()

    from api.app import create_app

    app = create_app()
    backend = FakeBackend()
    app.state.backend_transport = httpx.MockTransport(backend)
    client = TestClient(app)
    yield client, backend

    client.close()
    db_session.get_engine().dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


def csrf_token(client: TestClient) -> str:
    client.get("/login")
    return client.cookies["csrf_token"]


def login(client: TestClient, backend: FakeBackend, token: str = USER_TOKEN) -> None:
    backend.on("POST", "/api/login", body={"token": token})
    resp = client.post(
        "/auth/login",
        data={"email": "ann@example.com", "password": "secret", "csrf_token": csrf_token(client)},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    backend.requests.clear()


def directory_body(cards: list[dict], page: int = 1, pages: int = 1) -> dict:
    return {
        "visit_cards": cards,
        "pagination": {"current_page": page, "limit": 10, "total": len(cards), "pages": pages},
    }


# ---------------------- directory ----------------------
def test_home_lists_public_cards(site):
    client, backend = site
    backend.on("GET", "/api/visit-cards/public", body=directory_body([{"id": 1, "title": "Acme", "domain": "acme"}]))
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Acme" in resp.text
    assert 'href="/v/acme"' in resp.text
    assert "ID View" not in resp.text
    # anonymous visitors never trigger a profile lookup
    assert backend.calls("GET", "/api/profile") == []


def test_search_always_starts_on_first_page(site):
    client, backend = site
    backend.on("GET", "/api/visit-cards/public", body=directory_body([]))
    resp = client.get("/", params={"search": "acme"})
    assert resp.status_code == 200
    (call,) = backend.calls("GET", "/api/visit-cards/public")
    assert call.url.params["page"] == "1"
    assert call.url.params["search"] == "acme"
    assert 'No companies found for "acme"' in resp.text.replace("&#34;", '"')


def test_directory_error_banner(site):
    client, backend = site
    backend.on("GET", "/api/visit-cards/public", status=500, body={"error": "Database offline"})
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Database offline" in resp.text


def test_directory_shows_no_view_counts(site):
    client, backend = site
    # rows of the public list come without counters
    row = {"id": 1, "title": "Acme", "description": "Tools", "logo_url": "", "domain": "acme", "user_id": 3}
    backend.on("GET", "/api/visit-cards/public", body=directory_body([row]))
    resp = client.get("/")
    assert "Acme" in resp.text
    assert "0 views" not in resp.text


def test_admin_sees_both_view_links(site):
    client, backend = site
    login(client, backend, ADMIN_TOKEN)
    backend.on("GET", "/api/profile", body={"user": {"id": 2, "email": "root@example.com", "role": "admin"}})
    backend.on("GET", "/api/visit-cards/public", body=directory_body([{"id": 3, "title": "Acme", "domain": "acme"}]))
    resp = client.get("/")
    assert "Domain View" in resp.text
    assert 'href="/company/3"' in resp.text
    assert "Admin</a>" in resp.text


# ---------------------- card pages ----------------------
def test_domain_page_never_sends_token(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/v/acme", body={"visit_card": {"id": 3, "title": "Acme", "description": "**Bold**"}})
    resp = client.get("/v/acme")
    assert resp.status_code == 200
    assert "<strong>Bold</strong>" in resp.text
    (call,) = backend.requests
    assert "Authorization" not in call.headers


def test_company_page_uses_detail_endpoint_when_signed_in(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/visit-cards/3", body={"visit_card": {"id": 3, "title": "Acme", "token_valid": False,
                                                                  "telegram_bot_token": "1:x",
                                                                  "token_error_message": "Unauthorized"}})
    resp = client.get("/company/3")
    assert resp.status_code == 200
    assert "Telegram bot token problem: Unauthorized" in resp.text
    assert [r.url.path for r in backend.requests] == ["/api/visit-cards/3"]


def test_company_page_public_when_signed_out(site):
    client, backend = site
    backend.on("GET", "/api/visit-cards/3/public", body={"visit_card": {"id": 3, "title": "Acme"}})
    resp = client.get("/company/3")
    assert resp.status_code == 200
    assert [r.url.path for r in backend.requests] == ["/api/visit-cards/3/public"]


def test_card_page_error_is_one_message(site):
    client, backend = site
    backend.on("GET", "/api/v/ghost", status=404, body={"error": "Visit card not found"})
    resp = client.get("/v/ghost")
    assert resp.status_code == 404
    assert "Visit card not found" in resp.text
    assert len(backend.requests) == 1


def test_share_qr_png(site):
    client, backend = site
    resp = client.get("/q/company/3.png")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(b"\x89PNG")
    assert backend.requests == []


# ---------------------- auth ----------------------
def test_login_failure_shows_backend_message(site):
    client, backend = site
    backend.on("POST", "/api/login", status=401, body={"error": "Invalid credentials"})
    resp = client.post(
        "/auth/login",
        data={"email": "ann@example.com", "password": "bad", "csrf_token": csrf_token(client)},
    )
    assert resp.status_code == 400
    assert "Invalid credentials" in resp.text
    assert "session" not in client.cookies


def test_login_requires_csrf(site):
    client, backend = site
    resp = client.post("/auth/login", data={"email": "a@b.c", "password": "x"})
    assert resp.status_code == 403
    assert backend.requests == []


def test_logout_clears_session(site):
    client, backend = site
    login(client, backend)
    resp = client.post("/auth/logout", data={"csrf_token": client.cookies["csrf_token"]}, follow_redirects=False)
    assert resp.status_code == 303
    assert client.get("/dashboard", follow_redirects=False).headers["location"].startswith("/login")


def test_change_password_validates_before_sending(site):
    client, backend = site
    login(client, backend)
    token = client.cookies["csrf_token"]
    resp = client.post(
        "/change-password",
        data={"old_password": "old", "new_password": "abcdef", "confirm_password": "abcdeg", "csrf_token": token},
    )
    assert resp.status_code == 400
    assert "New passwords do not match" in resp.text
    resp = client.post(
        "/change-password",
        data={"old_password": "old", "new_password": "abc", "confirm_password": "abc", "csrf_token": token},
    )
    assert resp.status_code == 400
    assert "at least 6 characters" in resp.text
    assert backend.requests == []


def test_change_password_success_redirects_later(site):
    client, backend = site
    login(client, backend)
    backend.on("PUT", "/api/profile/password", body={"message": "Password updated"})
    resp = client.post(
        "/change-password",
        data={
            "old_password": "old",
            "new_password": "abcdef",
            "confirm_password": "abcdef",
            "csrf_token": client.cookies["csrf_token"],
        },
    )
    assert resp.status_code == 200
    assert "Password updated successfully!" in resp.text
    assert 'http-equiv="refresh"' in resp.text
    assert backend.calls("PUT", "/api/profile/password")[0].headers["Authorization"] == f"Bearer {USER_TOKEN}"


# ---------------------- dashboard ----------------------
def test_dashboard_requires_session(site):
    client, backend = site
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?next=%2Fdashboard"
    assert backend.requests == []


def test_dashboard_lists_own_cards(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/profile", body={"user": {"id": 1, "email": "ann@example.com", "name": "Ann"}})
    backend.on("GET", "/api/visit-cards/my", body={"visit_cards": [{"id": 5, "title": "Acme", "view_count": 1}]})
    resp = client.get("/dashboard")
    assert resp.status_code == 200
    assert "Welcome, Ann" in resp.text
    assert "1 view," in resp.text
    assert "/dashboard/cards/5/delete" in resp.text


def test_dashboard_failure_drops_session(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/profile", status=401, body={"error": "Token expired"})
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login")
    backend.requests.clear()
    assert client.get("/dashboard", follow_redirects=False).status_code == 303
    assert backend.requests == []


def test_delete_needs_confirmation(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/visit-cards/5", body={"visit_card": {"id": 5, "title": "Acme"}})
    backend.on("DELETE", "/api/visit-cards/5", body={"message": "deleted"})

    page = client.get("/dashboard/cards/5/delete")
    assert page.status_code == 200
    assert "Delete Acme?" in page.text

    token = client.cookies["csrf_token"]
    resp = client.post("/dashboard/cards/5/delete", data={"csrf_token": token}, follow_redirects=False)
    assert resp.status_code == 303
    assert backend.calls("DELETE", "/api/visit-cards/5") == []

    resp = client.post(
        "/dashboard/cards/5/delete", data={"csrf_token": token, "confirm": "yes"}, follow_redirects=False
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard?notice=card-deleted"
    assert len(backend.calls("DELETE", "/api/visit-cards/5")) == 1


# ---------------------- author form ----------------------
def test_create_form_requires_session(site):
    client, _ = site
    resp = client.get("/create-visit-card", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login?next=")


def test_create_rejects_bad_bot_token_without_sending(site):
    client, backend = site
    login(client, backend)
    resp = client.post(
        "/create-visit-card",
        data={"title": "Acme", "telegram_bot_token": "123:abc", "csrf_token": client.cookies["csrf_token"]},
    )
    assert resp.status_code == 400
    assert BOT_TOKEN_ERROR.split("(")[0].strip() in resp.text
    assert backend.requests == []


def test_create_with_logo_success(site):
    client, backend = site
    login(client, backend)
    backend.on("POST", "/api/visit-cards", body={"visit_card": {"id": 11, "title": "Acme"}})
    backend.on("PUT", "/api/visit-cards/11/logo", body={"logo_url": "/uploads/11.png"})
    resp = client.post(
        "/create-visit-card",
        data={"title": "Acme", "description": "Hello", "csrf_token": client.cookies["csrf_token"]},
        files={"logo": ("logo.png", PNG, "image/png")},
    )
    assert resp.status_code == 200
    assert "Visit card created successfully!" in resp.text
    assert 'content="1.5;url=/dashboard"' in resp.text
    assert [(r.method, r.url.path) for r in backend.requests] == [
        ("POST", "/api/visit-cards"),
        ("PUT", "/api/visit-cards/11/logo"),
    ]


def test_read_logo_stops_past_the_limit():
    upload = UploadFile(io.BytesIO(b"x" * 5000), filename="logo.png")
    logo = read_logo(upload, max_bytes=1024)
    assert logo is not None
    assert logo.size == 1025
    assert read_logo(UploadFile(io.BytesIO(b""), filename="")) is None


def test_oversized_logo_rejected_before_saving(site, monkeypatch):
    client, backend = site
    login(client, backend)
    monkeypatch.setenv("MAX_LOGO_BYTES", "1024")
    core_config.get_settings.cache_clear()
    resp = client.post(
        "/create-visit-card",
        data={"title": "Acme", "csrf_token": client.cookies["csrf_token"]},
        files={"logo": ("logo.png", PNG + b"0" * 4096, "image/png")},
    )
    assert resp.status_code == 400
    assert "Logo file exceeds" in resp.text
    assert backend.requests == []


def test_create_logo_failure_stays_on_form(site):
    client, backend = site
    login(client, backend)
    backend.on("POST", "/api/visit-cards", body={"visit_card": {"id": 11, "title": "Acme"}})
    backend.on("PUT", "/api/visit-cards/11/logo", status=500, body={"error": "Storage unavailable"})
    resp = client.post(
        "/create-visit-card",
        data={"title": "Acme", "csrf_token": client.cookies["csrf_token"]},
        files={"logo": ("logo.png", PNG, "image/png")},
    )
    assert resp.status_code == 400
    assert "Card saved, but the logo upload failed: Storage unavailable" in resp.text
    assert "http-equiv" not in resp.text
    # a retry must update the stored card instead of creating another one
    assert 'action="/edit-visit-card/11"' in resp.text


def test_preview_renders_markdown_without_saving(site):
    client, backend = site
    login(client, backend)
    resp = client.post(
        "/create-visit-card",
        data={"title": "Acme", "description": "# Hi", "action": "preview", "csrf_token": client.cookies["csrf_token"]},
    )
    assert resp.status_code == 200
    assert "<h1>Hi</h1>" in resp.text
    assert backend.requests == []


def test_edit_form_prefills_from_detail(site):
    client, backend = site
    login(client, backend)
    backend.on("GET", "/api/visit-cards/4", body={"visit_card": {"id": 4, "title": "Acme", "domain": "acme"}})
    resp = client.get("/edit-visit-card/4")
    assert resp.status_code == 200
    assert 'value="Acme"' in resp.text
    assert 'value="acme"' in resp.text


def test_logo_removal_is_its_own_action(site):
    client, backend = site
    login(client, backend)
    backend.on("DELETE", "/api/visit-cards/4/logo", body={"message": "ok"})
    resp = client.post(
        "/edit-visit-card/4/logo/delete",
        data={"csrf_token": client.cookies["csrf_token"]},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/edit-visit-card/4"
    assert [(r.method, r.url.path) for r in backend.requests] == [("DELETE", "/api/visit-cards/4/logo")]
