from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.repositories.backend_client import BackendClient
from api.services.card_view_service import (
    LOAD_ERROR,
    ROUTE_BY_DOMAIN,
    ROUTE_BY_ID,
    VIEW_DOMAIN,
    VIEW_OWNER,
    VIEW_PUBLIC,
    CardViewError,
    resolve_card,
)


@pytest.fixture()
def backend():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/v/missing":
            return httpx.Response(404, json={"error": "Visit card not found"})
        if request.url.path.startswith("/api/visit-cards/500"):
            return httpx.Response(500)
        return httpx.Response(200, json={"visit_card": {"id": 7, "title": "Acme", "domain": "acme"}})

    client = BackendClient("http://backend.test", transport=httpx.MockTransport(handler))
    yield client, seen
    client.close()


def test_domain_route_is_public_even_with_token(backend):
    client, seen = backend
    view = resolve_card(ROUTE_BY_DOMAIN, "acme", "jwt", client)
    assert view.kind == VIEW_DOMAIN
    assert not view.is_detailed
    assert len(seen) == 1
    assert seen[0].url.path == "/api/v/acme"
    assert "Authorization" not in seen[0].headers


def test_id_route_with_token_uses_detail_endpoint(backend):
    client, seen = backend
    view = resolve_card(ROUTE_BY_ID, "7", "jwt", client)
    assert view.kind == VIEW_OWNER
    assert view.is_detailed
    assert [r.url.path for r in seen] == ["/api/visit-cards/7"]
    assert seen[0].headers["Authorization"] == "Bearer jwt"


def test_id_route_without_token_uses_public_endpoint(backend):
    client, seen = backend
    view = resolve_card(ROUTE_BY_ID, "7", None, client)
    assert view.kind == VIEW_PUBLIC
    assert view.card.title == "Acme"
    assert [r.url.path for r in seen] == ["/api/visit-cards/7/public"]


def test_failure_becomes_single_message(backend):
    client, seen = backend
    with pytest.raises(CardViewError) as err:
        resolve_card(ROUTE_BY_DOMAIN, "missing", None, client)
    assert err.value.message == "Visit card not found"
    assert err.value.status_code == 404
    assert len(seen) == 1


def test_failure_without_body_message(backend):
    client, seen = backend
    with pytest.raises(CardViewError) as err:
        resolve_card(ROUTE_BY_ID, "500", None, client)
    assert err.value.message == "Request failed with status code 500"
    assert LOAD_ERROR == "Failed to load company information"
    assert len(seen) == 1


def test_unknown_route_kind(backend):
    client, seen = backend
    with pytest.raises(ValueError):
        resolve_card("bySlug", "acme", None, client)
    assert seen == []
