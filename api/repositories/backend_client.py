"""HTTP adapter for the visit card REST backend.

Every screen reaches users and cards through this client. It attaches the
bearer token when one is available, refuses auth-only calls without a token
before touching the network, and reduces failures to BackendError subclasses
that carry a single display message.
"""
from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from api.domain.models import CardPage, CardStatistic, Pagination, User, VisitCard

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Base class for failures talking to the REST backend."""

    def __init__(self, message: str, status_code: int | None = None, code: str = "server"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class MissingTokenError(BackendError):
    def __init__(self, message: str = "Authentication token not found"):
        super().__init__(message, status_code=None, code="missing_token")


class TransportError(BackendError):
    def __init__(self, message: str):
        super().__init__(message, status_code=None, code="transport")


class LogoUploadError(BackendError):
    """The logo upload failed after the card's text fields were saved."""

    def __init__(self, message: str, card_id: int, status_code: int | None = None):
        super().__init__(message, status_code=status_code, code="logo_upload")
        self.card_id = card_id


def describe_error(exc: BaseException, fallback: str) -> str:
    """One human-readable line: body error field, then exception text, then fallback."""
    message = getattr(exc, "message", None) or str(exc)
    return message.strip() or fallback


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error") or body.get("message")
        if isinstance(err, str) and err.strip():
            return err.strip()
    return f"Request failed with status code {response.status_code}"


class BackendClient:
    """Thin wrapper around ``httpx.Client`` with one method per endpoint."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.token = token or None
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------- plumbing --------------------------
    def _request(self, method: str, path: str, *, auth: bool = True, **kwargs: Any) -> Any:
        headers = dict(kwargs.pop("headers", None) or {})
        if auth:
            if not self.token:
                logger.debug("Refusing %s %s without a bearer token", method, path)
                raise MissingTokenError()
            headers["Authorization"] = f"Bearer {self.token}"
        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("[backend] %s %s failed: %s", method, path, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        if response.is_error:
            message = _error_message(response)
            logger.warning("[backend] %s %s -> %s: %s", method, path, response.status_code, message)
            raise BackendError(message, status_code=response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    # -------------------------- auth --------------------------
    def login(self, email: str, password: str) -> str:
        data = self._request("POST", "/api/login", auth=False, json={"email": email, "password": password})
        return str(data.get("token") or "")

    def register(self, email: str, password: str, name: str = "", company_name: str = "") -> str:
        payload = {"email": email, "password": password, "name": name, "company_name": company_name}
        data = self._request("POST", "/api/register", auth=False, json=payload)
        return str(data.get("token") or "")

    def get_profile(self) -> User:
        data = self._request("GET", "/api/profile")
        return User.from_dict(data.get("user"))

    def change_password(self, old_password: str, new_password: str) -> None:
        self._request(
            "PUT",
            "/api/profile/password",
            json={"old_password": old_password, "new_password": new_password},
        )

    # -------------------------- cards --------------------------
    def my_cards(self) -> list[VisitCard]:
        data = self._request("GET", "/api/visit-cards/my")
        return [VisitCard.from_dict(item) for item in data.get("visit_cards") or []]

    def public_cards(self, page: int = 1, limit: int = 10, search: str = "") -> CardPage:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        data = self._request("GET", "/api/visit-cards/public", auth=False, params=params)
        cards = [VisitCard.from_dict(item) for item in data.get("visit_cards") or []]
        return CardPage(cards, Pagination.from_dict(data.get("pagination"), page=page, limit=limit))

    def card_detail(self, card_id: int | str) -> VisitCard:
        data = self._request("GET", f"/api/visit-cards/{card_id}")
        return VisitCard.from_dict(data.get("visit_card"))

    def public_card(self, card_id: int | str) -> VisitCard:
        data = self._request("GET", f"/api/visit-cards/{card_id}/public", auth=False)
        return VisitCard.from_dict(data.get("visit_card"))

    def card_by_domain(self, domain: str) -> VisitCard:
        data = self._request("GET", f"/api/v/{quote(domain, safe='')}", auth=False)
        return VisitCard.from_dict(data.get("visit_card"))

    def create_card(self, fields: dict) -> VisitCard:
        data = self._request("POST", "/api/visit-cards", json=fields)
        return VisitCard.from_dict(data.get("visit_card"))

    def update_card(self, card_id: int | str, fields: dict) -> VisitCard:
        data = self._request("PUT", f"/api/visit-cards/{card_id}", json=fields)
        return VisitCard.from_dict(data.get("visit_card"))

    def delete_card(self, card_id: int | str) -> None:
        self._request("DELETE", f"/api/visit-cards/{card_id}")

    def upload_logo(self, card_id: int | str, filename: str, content: bytes, content_type: str) -> str:
        files = {"logo": (filename or "logo", content, content_type)}
        data = self._request("PUT", f"/api/visit-cards/{card_id}/logo", files=files)
        card = data.get("visit_card") or {}
        return str(data.get("logo_url") or card.get("logo_url") or "")

    def delete_logo(self, card_id: int | str) -> None:
        self._request("DELETE", f"/api/visit-cards/{card_id}/logo")

    # -------------------------- admin --------------------------
    def list_users(self) -> list[User]:
        data = self._request("GET", "/api/admin/users")
        return [User.from_dict(item) for item in data.get("users") or []]

    def get_user(self, user_id: int | str) -> User:
        data = self._request("GET", f"/api/admin/users/{user_id}")
        return User.from_dict(data.get("user"))

    def update_user(self, user_id: int | str, fields: dict) -> User:
        data = self._request("PUT", f"/api/admin/users/{user_id}", json=fields)
        return User.from_dict(data.get("user"))

    def delete_user(self, user_id: int | str) -> None:
        self._request("DELETE", f"/api/admin/users/{user_id}")

    def admin_cards(self) -> list[VisitCard]:
        data = self._request("GET", "/api/admin/visit-cards")
        return [VisitCard.from_dict(item) for item in data.get("visit_cards") or []]

    def admin_card_stats(self) -> list[CardStatistic]:
        data = self._request("GET", "/api/admin/visit-cards/stats")
        return [CardStatistic.from_dict(item) for item in data.get("all_stats") or []]
