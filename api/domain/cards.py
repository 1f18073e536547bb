"""Visit card rules: author-form validation and public view links."""
from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from urllib.parse import quote

from api.domain.models import ROLE_ADMIN, VisitCard

BOT_TOKEN_PATTERN = re.compile(r"\d+:[A-Za-z0-9_-]{35}")
# same rule for the HTML pattern attribute (v-flag regex: "-" escaped)
BOT_TOKEN_HTML_PATTERN = r"\d+:[A-Za-z0-9_\-]{35}"
BOT_TOKEN_ERROR = (
    "Invalid bot token format. Bot tokens should follow the format: digits:letters "
    "(e.g., 123456789:ABCdefGhIJKlmNoPQRsTUVwxyz)"
)

LOGO_CONTENT_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"}
)
MAX_LOGO_BYTES = 5 * 1024 * 1024


class CardValidationError(Exception):
    """Raised before submission when a form value breaks a client-side rule."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.message = message
        self.field = field


def is_valid_bot_token(value: str | None) -> bool:
    return bool(BOT_TOKEN_PATTERN.fullmatch(value or ""))


def validate_bot_token(value: str | None) -> str:
    """Return the normalized token ("" when unset) or raise CardValidationError."""
    token = (value or "").strip()
    if token and not is_valid_bot_token(token):
        raise CardValidationError(BOT_TOKEN_ERROR, "telegram_bot_token")
    return token


def logo_content_type(content_type: str | None, filename: str | None = None) -> str:
    ct = (content_type or "").split(";", 1)[0].strip().lower()
    if not ct or ct == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(filename or "")
        ct = (guessed or ct).lower()
    return ct


def validate_logo(content_type: str | None, size: int, max_bytes: int = MAX_LOGO_BYTES, filename: str | None = None) -> str:
    """Check a logo file's type and size; returns the normalized MIME type."""
    ct = logo_content_type(content_type, filename)
    if ct not in LOGO_CONTENT_TYPES:
        raise CardValidationError("Unsupported logo format. Use PNG, JPEG, GIF, WebP or SVG.", "logo")
    if size <= 0:
        raise CardValidationError("Logo file is empty.", "logo")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise CardValidationError(f"Logo file exceeds {limit_mb:g} MB.", "logo")
    return ct


def validate_title(value: str | None) -> str:
    title = (value or "").strip()
    if not title:
        raise CardValidationError("Company title is required.", "title")
    return title


@dataclass(frozen=True)
class ViewLink:
    href: str
    label: str
    primary: bool = True


def card_id_path(card: VisitCard) -> str:
    return f"/company/{card.id}"


def card_domain_path(card: VisitCard) -> str:
    return f"/v/{quote(card.domain, safe='')}"


def card_path(card: VisitCard) -> str:
    """Preferred public route: the domain alias when set, else the numeric id."""
    return card_domain_path(card) if card.domain else card_id_path(card)


def view_links(card: VisitCard, viewer_role: str | None) -> list[ViewLink]:
    """Buttons shown for a directory row, depending on who is looking."""
    if viewer_role == ROLE_ADMIN:
        links = []
        if card.domain:
            links.append(ViewLink(card_domain_path(card), "Domain View"))
            links.append(ViewLink(card_id_path(card), "ID View", primary=False))
        else:
            links.append(ViewLink(card_id_path(card), "View Profile"))
        return links
    return [ViewLink(card_path(card), "View Profile")]
