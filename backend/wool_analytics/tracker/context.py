"""
Explicit injection point for the active tracker.

The host binds its tracker once at startup with ``use_tracker``; helpers
and components look it up with ``current_tracker`` instead of importing a
module-level instance.
"""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from wool_analytics.tracker.client import Tracker

_current: ContextVar[Optional["Tracker"]] = ContextVar("wool_analytics_tracker", default=None)


def current_tracker() -> Optional["Tracker"]:
    return _current.get()


@contextmanager
def use_tracker(tracker: "Tracker") -> Iterator["Tracker"]:
    """Make ``tracker`` the active tracker inside the block."""
    token = _current.set(tracker)
    try:
        yield tracker
    finally:
        _current.reset(token)
