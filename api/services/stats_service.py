"""Admin totals, recomputed from the full lists on every load."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from api.domain.models import CardStatistic, User, VisitCard


@dataclass(frozen=True)
class AdminStats:
    total_users: int = 0
    total_cards: int = 0
    total_views: int = 0
    total_bot_interactions: int = 0

    @property
    def average_views(self) -> int:
        if not self.total_cards:
            return 0
        # half rounds up
        return math.floor(self.total_views / self.total_cards + 0.5)


def aggregate_stats(users: Sequence[User], cards: Iterable[VisitCard | CardStatistic]) -> AdminStats:
    cards = list(cards)
    return AdminStats(
        total_users=len(users),
        total_cards=len(cards),
        total_views=sum(card.view_count for card in cards),
        total_bot_interactions=sum(card.bot_view_count for card in cards),
    )
