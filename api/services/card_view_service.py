"""Pick the backend endpoint for a card page and interpret the result.

``/v/<domain>`` always goes to the public by-domain endpoint, even for a
signed-in visitor. ``/company/<id>`` uses the authenticated detail endpoint
when a session token exists (owners and admins get the full record) and the
public by-id endpoint otherwise.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from api.domain.models import VisitCard
from api.repositories.backend_client import BackendClient, BackendError, describe_error

ROUTE_BY_ID = "byId"
ROUTE_BY_DOMAIN = "byDomain"

VIEW_DOMAIN = "domain"
VIEW_OWNER = "owner"
VIEW_PUBLIC = "public"

LOAD_ERROR = "Failed to load company information"

logger = logging.getLogger(__name__)


class CardViewError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class CardView:
    kind: str
    card: VisitCard

    @property
    def is_detailed(self) -> bool:
        return self.kind == VIEW_OWNER


def resolve_card(route_kind: str, key: str, token: Optional[str], client: BackendClient) -> CardView:
    """Issue exactly one request for the card behind a route and wrap the result."""
    try:
        if route_kind == ROUTE_BY_DOMAIN:
            return CardView(VIEW_DOMAIN, client.card_by_domain(key))
        if route_kind != ROUTE_BY_ID:
            raise ValueError(f"unknown route kind: {route_kind!r}")
        if token:
            client.token = token
            return CardView(VIEW_OWNER, client.card_detail(key))
        return CardView(VIEW_PUBLIC, client.public_card(key))
    except BackendError as exc:
        logger.info("Card %s/%s could not be resolved: %s", route_kind, key, exc.message)
        raise CardViewError(describe_error(exc, LOAD_ERROR), exc.status_code) from exc
