"""Public directory: search term, page number and the visible page window."""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from api.domain.models import CardPage, Pagination, VisitCard
from api.domain.pagination import page_window
from api.repositories.backend_client import BackendClient


@dataclass(frozen=True)
class DirectoryQuery:
    page: int = 1
    page_size: int = 10
    search: str = ""

    def with_search(self, term: str | None) -> "DirectoryQuery":
        """A new search term always starts again from page 1."""
        return replace(self, search=(term or "").strip(), page=1)

    def at_page(self, page: int) -> "DirectoryQuery":
        return replace(self, page=max(1, page))


@dataclass
class DirectoryPage:
    query: DirectoryQuery
    cards: list[VisitCard] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)

    @property
    def total_pages(self) -> int:
        return self.pagination.pages

    @property
    def total(self) -> int:
        return self.pagination.total

    @property
    def window(self) -> list[int]:
        return page_window(self.query.page, self.total_pages)

    @property
    def has_previous(self) -> bool:
        return self.query.page > 1

    @property
    def has_next(self) -> bool:
        return self.query.page < self.total_pages

    @property
    def showing_from(self) -> int:
        if not self.total:
            return 0
        return (self.query.page - 1) * self.query.page_size + 1

    @property
    def showing_to(self) -> int:
        return min(self.query.page * self.query.page_size, self.total)


class DirectoryService:
    def __init__(self, client: BackendClient) -> None:
        self.client = client

    def fetch(self, query: DirectoryQuery) -> DirectoryPage:
        result: CardPage = self.client.public_cards(query.page, query.page_size, query.search)
        return DirectoryPage(query=query, cards=result.cards, pagination=result.pagination)
