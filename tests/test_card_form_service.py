from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.domain.cards import BOT_TOKEN_ERROR, CardValidationError
from api.repositories.backend_client import BackendClient, BackendError, LogoUploadError
from api.services.card_form_service import CardForm, CardFormService, LogoFile

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def make_service(logo_status: int = 200, save_status: int = 200):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path.endswith("/logo"):
            if request.method == "DELETE":
                return httpx.Response(200, json={"message": "Logo deleted"})
            if logo_status != 200:
                return httpx.Response(logo_status, json={"error": "Storage unavailable"})
            return httpx.Response(200, json={"logo_url": "/uploads/logos/11.png"})
        if save_status != 200:
            return httpx.Response(save_status, json={"error": "Domain already taken"})
        body = json.loads(request.content or b"{}")
        card_id = 11 if request.method == "POST" else int(path.rsplit("/", 1)[-1])
        return httpx.Response(200, json={"visit_card": dict(body, id=card_id)})

    client = BackendClient("http://backend.test", "jwt", transport=httpx.MockTransport(handler))
    return CardFormService(client), seen


def test_invalid_bot_token_blocks_submission():
    service, seen = make_service()
    with pytest.raises(CardValidationError) as err:
        service.submit(CardForm(title="Acme", telegram_bot_token="123:short"))
    assert err.value.message == BOT_TOKEN_ERROR
    assert seen == []


def test_oversized_logo_blocks_submission():
    service, seen = make_service()
    big = LogoFile("logo.png", "image/png", b"0" * (6 * 1024 * 1024))
    with pytest.raises(CardValidationError):
        service.submit(CardForm(title="Acme"), big)
    assert seen == []


def test_create_without_logo_is_one_request():
    service, seen = make_service()
    result = service.submit(CardForm(title=" Acme ", description="**hi**"))
    assert result.created
    assert result.card.id == 11
    assert [(r.method, r.url.path) for r in seen] == [("POST", "/api/visit-cards")]
    assert json.loads(seen[0].content)["title"] == "Acme"


def test_create_then_upload_logo_with_returned_id():
    service, seen = make_service()
    result = service.submit(CardForm(title="Acme"), LogoFile("logo.png", "image/png", PNG))
    assert [(r.method, r.url.path) for r in seen] == [
        ("POST", "/api/visit-cards"),
        ("PUT", "/api/visit-cards/11/logo"),
    ]
    assert result.logo_url == "/uploads/logos/11.png"


def test_logo_failure_after_save_raises():
    service, seen = make_service(logo_status=500)
    with pytest.raises(LogoUploadError) as err:
        service.submit(CardForm(title="Acme"), LogoFile("logo.png", "image/png", PNG))
    assert err.value.card_id == 11
    assert "Storage unavailable" in err.value.message
    # the text fields were committed first
    assert seen[0].method == "POST"
    assert len(seen) == 2


def test_failed_save_skips_logo_upload():
    service, seen = make_service(save_status=409)
    with pytest.raises(BackendError) as err:
        service.submit(CardForm(title="Acme"), LogoFile("logo.png", "image/png", PNG), card_id=4)
    assert not isinstance(err.value, LogoUploadError)
    assert [(r.method, r.url.path) for r in seen] == [("PUT", "/api/visit-cards/4")]


def test_update_keeps_card_id():
    service, seen = make_service()
    result = service.submit(CardForm(title="Acme", domain=" acme "), card_id=4)
    assert not result.created
    assert json.loads(seen[0].content)["domain"] == "acme"
    assert result.card.id == 4


def test_remove_logo_is_explicit():
    service, seen = make_service()
    service.remove_logo(4)
    assert [(r.method, r.url.path) for r in seen] == [("DELETE", "/api/visit-cards/4/logo")]
