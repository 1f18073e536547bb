"""
Utility helpers shared across routers/services.
"""

from typing import Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL under ``base`` (public site by default).
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://") or path.startswith("data:"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def safe_next(value: Optional[str], default: str = "/") -> str:
    """Accept only same-site absolute paths as redirect targets."""
    dest = (value or "").strip()
    if not dest.startswith("/") or dest.startswith("//"):
        return default
    return dest
