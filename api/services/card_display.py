"""Helpers for card display (markdown, excerpts, logo URLs, Jinja filters)."""
from __future__ import annotations

import logging

import mistune
from fastapi.templating import Jinja2Templates
from markupsafe import Markup, escape

from api.core.config import get_settings
from api.core.utils import absolute_url

logger = logging.getLogger(__name__)

# escape=True keeps user-supplied HTML inert
_markdown = mistune.create_markdown(escape=True, plugins=["strikethrough", "table", "url"])


def render_markdown(text: str | None) -> Markup:
    """Convert a card description to safe HTML; blank input renders nothing."""
    if not text or not str(text).strip():
        return Markup("")
    try:
        return Markup(_markdown(str(text)))
    except Exception as exc:  # mistune plugins can fail on odd input
        logger.warning("Markdown rendering failed: %s: %s", type(exc).__name__, exc)
        return Markup(f"<p>{escape(str(text))}</p>")


def excerpt(text: str | None, limit: int = 100) -> str:
    value = text or ""
    if len(value) <= limit:
        return value
    return value[:limit] + "..."


def logo_src(url: str | None) -> str:
    """Logos served by the backend come back as relative paths."""
    value = (url or "").strip()
    if not value:
        return ""
    return absolute_url(value, base=get_settings().backend_url)


def plural(count: int, singular: str, plural_form: str) -> str:
    return singular if count == 1 else plural_form


def install_filters(templates: Jinja2Templates) -> Jinja2Templates:
    env = templates.env
    env.filters["markdown"] = render_markdown
    env.filters["excerpt"] = excerpt
    env.filters["logo_src"] = logo_src
    env.globals["plural"] = plural
    return templates
