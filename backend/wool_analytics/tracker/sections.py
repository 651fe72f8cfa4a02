"""
Section visibility accounting.

The host reports intersection ratios for tracked elements; time is only
accumulated while an element is at least ``threshold`` visible.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Hashable, Optional

FlushCallback = Callable[[str, int], None]


@dataclass
class _Accumulator:
    section_id: str
    visible_since: Optional[float] = None
    total: float = 0.0

    def close_span(self, now: float) -> None:
        if self.visible_since is not None:
            self.total += max(0.0, now - self.visible_since)
            self.visible_since = None

    def visible_ms(self) -> int:
        return round(self.total * 1000)


class SectionHandle:
    """Returned by ``attach``; stops observing one element."""

    def __init__(
        self,
        owner: "SectionVisibility",
        element: Hashable,
        acc: _Accumulator,
        on_flush: Optional[FlushCallback] = None,
    ) -> None:
        self._owner = owner
        self._element = element
        self._acc = acc
        self._on_flush = on_flush
        self._detached = False

    @property
    def attached(self) -> bool:
        return not self._detached

    def detach(self) -> Optional[tuple[str, int]]:
        """Stop observing. Returns the section's unreported time, if any."""
        if self._detached:
            return None
        self._detached = True
        flushed = self._owner._detach(self._element, self._acc)
        if flushed is not None and self._on_flush is not None:
            self._on_flush(*flushed)
        return flushed


class SectionVisibility:
    """Map from tracked element to its visibility accumulator."""

    def __init__(self, clock: Callable[[], float], threshold: float = 0.5) -> None:
        self._clock = clock
        self.threshold = threshold
        self._sections: dict[Hashable, _Accumulator] = {}

    def __len__(self) -> int:
        return len(self._sections)

    def __contains__(self, element: Hashable) -> bool:
        return element in self._sections

    def attach(
        self,
        section_id: str,
        element: Hashable,
        on_flush: Optional[FlushCallback] = None,
    ) -> SectionHandle:
        """
        Start tracking ``element`` under ``section_id``. Re-attaching resets it.

        ``on_flush`` receives the unreported time when the handle detaches.
        """
        acc = _Accumulator(section_id=section_id)
        self._sections[element] = acc
        return SectionHandle(self, element, acc, on_flush)

    def observe(self, element: Hashable, ratio: float) -> None:
        """Intersection callback for one element."""
        acc = self._sections.get(element)
        if acc is None:
            return
        now = self._clock()
        if ratio >= self.threshold:
            if acc.visible_since is None:
                acc.visible_since = now
        else:
            acc.close_span(now)

    def flush(self) -> list[tuple[str, int]]:
        """
        Report and reset accumulated time for every section.

        Sections stay attached; one that is still visible keeps counting
        from now on.
        """
        now = self._clock()
        report: list[tuple[str, int]] = []
        for acc in self._sections.values():
            still_visible = acc.visible_since is not None
            acc.close_span(now)
            ms_visible = acc.visible_ms()
            if ms_visible > 0:
                report.append((acc.section_id, ms_visible))
            acc.total = 0.0
            if still_visible:
                acc.visible_since = now
        return report

    def _detach(self, element: Hashable, acc: _Accumulator) -> Optional[tuple[str, int]]:
        # A newer attach of the same element owns the slot now
        if self._sections.get(element) is not acc:
            return None
        del self._sections[element]
        acc.close_span(self._clock())
        ms_visible = acc.visible_ms()
        if ms_visible > 0:
            return acc.section_id, ms_visible
        return None

    def clear(self) -> None:
        self._sections.clear()
