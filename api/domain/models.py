"""Typed views of the records returned by the REST backend."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

ROLE_USER = "user"
ROLE_ADMIN = "admin"


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ("" if value is None else str(value))


@dataclass
class User:
    id: int
    email: str = ""
    name: str = ""
    company_name: str = ""
    role: str = ROLE_USER

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "User":
        data = data or {}
        return cls(
            id=_int(data.get("id")),
            email=_str(data.get("email")),
            name=_str(data.get("name")),
            company_name=_str(data.get("company_name")),
            role=_str(data.get("role")) or ROLE_USER,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class VisitCard:
    id: int
    title: str = ""
    description: str = ""
    logo_url: str = ""
    domain: str = ""
    telegram_bot_token: str = ""
    # incremented by the backend on every access; never touched locally
    view_count: int = 0
    bot_view_count: int = 0
    user_id: int = 0
    token_valid: bool = True
    token_error_message: str = ""
    user: Optional[User] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "VisitCard":
        data = data or {}
        user_data = data.get("user")
        token_valid = data.get("token_valid")
        return cls(
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            description=_str(data.get("description")),
            logo_url=_str(data.get("logo_url")),
            domain=_str(data.get("domain")).strip(),
            telegram_bot_token=_str(data.get("telegram_bot_token")),
            view_count=_int(data.get("view_count")),
            bot_view_count=_int(data.get("bot_view_count")),
            user_id=_int(data.get("user_id")),
            token_valid=True if token_valid is None else bool(token_valid),
            token_error_message=_str(data.get("token_error_message")),
            user=User.from_dict(user_data) if isinstance(user_data, Mapping) else None,
        )


@dataclass
class Pagination:
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, *, page: int = 1, limit: int = 10) -> "Pagination":
        data = data or {}
        return cls(
            page=_int(data.get("current_page", data.get("page")), page),
            limit=_int(data.get("limit"), limit),
            total=_int(data.get("total")),
            pages=_int(data.get("pages")),
        )


@dataclass
class CardPage:
    cards: list[VisitCard] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)


@dataclass
class CardStatistic:
    id: int
    title: str = ""
    view_count: int = 0
    bot_view_count: int = 0
    user: Optional[User] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "CardStatistic":
        data = data or {}
        user_data = data.get("user")
        return cls(
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            view_count=_int(data.get("view_count")),
            bot_view_count=_int(data.get("bot_view_count")),
            user=User.from_dict(user_data) if isinstance(user_data, Mapping) else None,
        )
