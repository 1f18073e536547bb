"""
Configuration helpers for the visit card frontend.

Exposes a Settings object that reads environment variables (backend URL,
session store, paging, upload limits) so that routers/services do not fetch
os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    admin_base_url: str
    backend_url: str
    database_url: str
    session_ttl_seconds: int
    request_timeout: float
    page_size: int
    redirect_delay_seconds: float
    max_logo_bytes: int
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        admin_base_url=os.getenv("ADMIN_BASE_URL", "http://localhost:8001").rstrip("/"),
        backend_url=os.getenv("BACKEND_URL", "http://localhost:8080").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./visitcards.db"),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        request_timeout=_float(os.getenv("BACKEND_TIMEOUT", "10"), 10.0),
        page_size=max(1, _int(os.getenv("DIRECTORY_PAGE_SIZE", "10"), 10)),
        redirect_delay_seconds=_float(os.getenv("REDIRECT_DELAY_SECONDS", "1.5"), 1.5),
        max_logo_bytes=_int(os.getenv("MAX_LOGO_BYTES", str(5 * 1024 * 1024)), 5 * 1024 * 1024),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
