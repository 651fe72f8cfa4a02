"""
Host page model.

The host application owns a ``Page``, keeps its fields current and emits
lifecycle events on ``page.events``. The tracker only reads it.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

import structlog

logger = structlog.get_logger()

VISIBILITY_CHANGE = "visibilitychange"
BEFORE_UNLOAD = "beforeunload"
SCROLL = "scroll"
BEFORE_INSTALL_PROMPT = "beforeinstallprompt"
APP_INSTALLED = "appinstalled"
ERROR = "error"
UNHANDLED_REJECTION = "unhandledrejection"
INTERSECTION = "intersection"

UTM_KEYS = ("source", "medium", "campaign", "term", "content")

Listener = Callable[..., Any]


class PageEvents:
    """Listener registry for page lifecycle events."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def add_listener(self, name: str, listener: Listener) -> None:
        if listener not in self._listeners[name]:
            self._listeners[name].append(listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        try:
            self._listeners[name].remove(listener)
        except ValueError:
            pass

    def listener_count(self, name: Optional[str] = None) -> int:
        if name is not None:
            return len(self._listeners.get(name, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def emit(self, name: str, *args: Any) -> None:
        """Call every listener for ``name``. Listener failures stay here."""
        for listener in list(self._listeners.get(name, ())):
            try:
                listener(*args)
            except Exception as e:
                logger.warning("page_listener_failed", event=name, error=str(e))


@dataclass
class Page:
    """Current state of the host page as the tracker sees it."""

    url: str = "/"
    title: str = ""
    referrer: str = ""
    user_agent: str = ""
    language: Optional[str] = None
    timezone: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    viewport_height: int = 0
    document_height: int = 0
    scroll_top: int = 0
    do_not_track: bool = False
    standalone: bool = False
    visible: bool = True
    events: PageEvents = field(default_factory=PageEvents, repr=False)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def query(self) -> str:
        return urlsplit(self.url).query

    @property
    def full_path(self) -> str:
        """Path plus query string, as reported on beacons."""
        query = self.query
        return f"{self.path}?{query}" if query else self.path

    def is_under(self, prefix: str) -> bool:
        """Current path is ``prefix`` or below it (``/admin`` does not cover ``/administration``)."""
        base = prefix.rstrip("/")
        return self.path == base or self.path.startswith(f"{base}/")

    def utm(self) -> dict[str, Optional[str]]:
        """UTM parameters from the current query string."""
        params = parse_qs(self.query)
        return {key: (params.get(f"utm_{key}") or [None])[0] for key in UTM_KEYS}

    def navigate(self, url: str, title: Optional[str] = None) -> None:
        """Client-side route change. The document referrer is left as it was."""
        self.url = url
        if title is not None:
            self.title = title
        self.scroll_top = 0

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        self.events.emit(VISIBILITY_CHANGE)

    def scroll_to(self, scroll_top: int) -> None:
        self.scroll_top = scroll_top
        self.events.emit(SCROLL)
