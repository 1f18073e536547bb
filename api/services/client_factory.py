"""Build backend clients bound to the app's configuration."""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from api.core.config import get_settings
from api.repositories.backend_client import BackendClient


def backend_for(request: Request, token: Optional[str] = None) -> BackendClient:
    """Client for this request; ``app.state.backend_transport`` overrides the network (tests)."""
    settings = get_settings()
    transport = getattr(getattr(request.app, "state", None), "backend_transport", None)
    return BackendClient(
        settings.backend_url,
        token,
        timeout=settings.request_timeout,
        transport=transport,
    )
