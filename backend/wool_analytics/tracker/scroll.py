"""
Scroll-depth milestones.
"""
from __future__ import annotations

MILESTONES = (25, 50, 75, 100)


def scroll_percent(scroll_top: float, viewport_height: float, document_height: float) -> int | None:
    """Share of the document seen so far (viewport bottom edge), in percent."""
    if document_height <= 0:
        return None
    return round((scroll_top + viewport_height) / document_height * 100)


class ScrollDepth:
    """Tracks which milestones were already reported for the current page view."""

    def __init__(self, milestones: tuple[int, ...] = MILESTONES) -> None:
        self.milestones = tuple(sorted(milestones))
        self._sent: set[int] = set()

    @property
    def sent(self) -> frozenset[int]:
        return frozenset(self._sent)

    def reset(self) -> None:
        self._sent.clear()

    def observe(self, scroll_top: float, viewport_height: float, document_height: float) -> list[int]:
        """
        Milestones newly reached at this scroll position, ascending.

        Deeper milestones are only reported once every shallower one has
        been, so reports never go backwards within a page view.
        """
        percent = scroll_percent(scroll_top, viewport_height, document_height)
        if percent is None:
            return []
        reached = [m for m in self.milestones if percent >= m and m not in self._sent]
        self._sent.update(reached)
        return reached
