"""Page-number window for the public directory."""
from __future__ import annotations

MAX_VISIBLE_PAGES = 5


def page_window(current: int, total: int, max_visible: int = MAX_VISIBLE_PAGES) -> list[int]:
    """Return at most ``max_visible`` page numbers centred on ``current``.

    The window is clamped to ``[1, total]`` and shifted (not shrunk) near the
    edges, so page 1 of 10 gives 1..5 and page 10 gives 6..10.
    """
    if total < 1 or max_visible < 1:
        return []
    start = max(1, current - max_visible // 2)
    end = min(total, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(1, end - max_visible + 1)
    return list(range(start, end + 1))
