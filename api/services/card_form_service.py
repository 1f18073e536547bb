"""Create/edit visit cards: validate, save text fields, then upload the logo.

The logo goes up in a second, independent request keyed by the card id from
the first one. When that second request fails the first has already been
committed, so the caller gets a LogoUploadError and must stay on the form.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from api.domain.cards import (
    MAX_LOGO_BYTES,
    validate_bot_token,
    validate_logo,
    validate_title,
)
from api.domain.models import VisitCard
from api.repositories.backend_client import (
    BackendClient,
    BackendError,
    LogoUploadError,
    describe_error,
)

logger = logging.getLogger(__name__)


@dataclass
class CardForm:
    title: str = ""
    description: str = ""
    domain: str = ""
    telegram_bot_token: str = ""

    @classmethod
    def from_card(cls, card: VisitCard) -> "CardForm":
        return cls(
            title=card.title,
            description=card.description,
            domain=card.domain,
            telegram_bot_token=card.telegram_bot_token,
        )


@dataclass
class LogoFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class SubmitResult:
    card: VisitCard
    logo_url: str = ""
    created: bool = False


class CardFormService:
    """Runs the author form's submission protocol against the backend."""

    def __init__(self, client: BackendClient, max_logo_bytes: int = MAX_LOGO_BYTES) -> None:
        self.client = client
        self.max_logo_bytes = max_logo_bytes

    def validate(self, form: CardForm, logo: Optional[LogoFile] = None) -> tuple[dict, Optional[LogoFile]]:
        """Raise CardValidationError before anything is sent."""
        payload = {
            "title": validate_title(form.title),
            "description": form.description or "",
            "domain": (form.domain or "").strip(),
            "telegram_bot_token": validate_bot_token(form.telegram_bot_token),
        }
        if logo is not None:
            ct = validate_logo(logo.content_type, logo.size, self.max_logo_bytes, logo.filename)
            logo = LogoFile(logo.filename, ct, logo.data)
        return payload, logo

    def submit(self, form: CardForm, logo: Optional[LogoFile] = None, card_id: Optional[int] = None) -> SubmitResult:
        payload, logo = self.validate(form, logo)
        if card_id is None:
            card = self.client.create_card(payload)
            created = True
        else:
            card = self.client.update_card(card_id, payload)
            created = False
        target_id = card.id or card_id
        logger.info("Card %s %s", target_id, "created" if created else "updated")
        if logo is None:
            return SubmitResult(card=card, logo_url=card.logo_url, created=created)
        if not target_id:
            raise LogoUploadError("Card was saved but its id is unknown; the logo was not uploaded.", 0)
        try:
            logo_url = self.client.upload_logo(target_id, logo.filename, logo.data, logo.content_type)
        except BackendError as exc:
            logger.warning("Logo upload for card %s failed after save: %s", target_id, exc.message)
            message = describe_error(exc, "Failed to upload logo")
            raise LogoUploadError(
                f"Card saved, but the logo upload failed: {message}", target_id, exc.status_code
            ) from exc
        if logo_url:
            card.logo_url = logo_url
        return SubmitResult(card=card, logo_url=card.logo_url, created=created)

    def remove_logo(self, card_id: int) -> None:
        self.client.delete_logo(card_id)
        logger.info("Logo removed from card %s", card_id)
