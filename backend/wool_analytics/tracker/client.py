"""
Client-side analytics tracker.

One ``Tracker`` per page load, created by the host application and handed
to whatever needs it (see ``tracker.context``). Everything runs on the
host's event loop: listener callbacks, the heartbeat task and the scroll
debounce timer. Sends are fire-and-forget and tracking failures never
reach the host.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Hashable, Optional, Protocol

import structlog

from wool_analytics.schemas.beacon import BeaconPayload, EventType, UtmParams
from wool_analytics.tracker import page as page_events
from wool_analytics.tracker.config import TrackerSettings
from wool_analytics.tracker.heartbeat import Heartbeat
from wool_analytics.tracker.page import Page
from wool_analytics.tracker.scroll import ScrollDepth
from wool_analytics.tracker.sections import SectionHandle, SectionVisibility
from wool_analytics.tracker.storage import MemoryStorage, Storage, get_or_create_session_id
from wool_analytics.tracker.transport import HttpxTransport, Transport

logger = structlog.get_logger()

WebVitalRating = str  # "good" | "needs-improvement" | "poor"


class InstallPrompt(Protocol):
    """Deferred install prompt handed over by the host platform."""

    def prompt(self) -> None: ...

    async def user_choice(self) -> str: ...


def epoch_ms() -> int:
    return int(time.time() * 1000)


class Tracker:
    def __init__(
        self,
        page: Page,
        *,
        settings: Optional[TrackerSettings] = None,
        transport: Optional[Transport] = None,
        storage: Optional[Storage] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.page = page
        self.settings = settings or TrackerSettings()
        self._transport: Transport = transport or HttpxTransport.from_settings(self.settings)
        self._clock = clock
        self.session_id = get_or_create_session_id(storage or MemoryStorage(), self.settings.session_key)

        self.heartbeat = Heartbeat(self.settings.heartbeat_interval, self._on_heartbeat)
        self.scroll_depth = ScrollDepth()
        self.sections = SectionVisibility(clock, threshold=self.settings.visibility_threshold)
        self.page_start_time = epoch_ms()

        self._scroll_timer: Optional[asyncio.TimerHandle] = None
        self._deferred_prompt: Optional[InstallPrompt] = None
        self._listeners: list[tuple[str, Callable[..., Any]]] = []
        self._started = False

        if self.settings.debug:
            logger.debug("analytics_initialized", session_id=self.session_id)

    # Lifecycle

    def start(self) -> None:
        """Install listeners and report the initial page view and launch mode."""
        if self._started:
            return
        self._started = True
        self._install_listeners()
        self.track_page_view()
        self._send(
            EventType.APP_LAUNCH,
            {"mode": "standalone" if self.page.standalone else "browser"},
        )

    def close(self) -> None:
        """Remove listeners, stop timers and flush section time."""
        for name, listener in self._listeners:
            self.page.events.remove_listener(name, listener)
        self._listeners.clear()
        self.heartbeat.stop()
        self._cancel_scroll_timer()
        self._flush_sections()
        self._started = False

    async def aclose(self) -> None:
        self.close()
        await self._transport.aclose()

    async def __aenter__(self) -> "Tracker":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _install_listeners(self) -> None:
        listeners: list[tuple[str, Callable[..., Any]]] = [
            (page_events.VISIBILITY_CHANGE, self._on_visibility_change),
            (page_events.BEFORE_UNLOAD, self._on_unload),
            (page_events.SCROLL, self._on_scroll),
            (page_events.BEFORE_INSTALL_PROMPT, self._on_install_prompt),
            (page_events.APP_INSTALLED, self._on_app_installed),
            (page_events.ERROR, self._on_error),
            (page_events.UNHANDLED_REJECTION, self._on_unhandled_rejection),
            (page_events.INTERSECTION, self.sections.observe),
        ]
        for name, listener in listeners:
            self.page.events.add_listener(name, listener)
        self._listeners = listeners

    # Public API

    def track_page_view(self, custom_path: Optional[str] = None) -> None:
        """Report a page view. Call on every client-side route change."""
        self.scroll_depth.reset()
        self._flush_sections()
        meta: dict[str, Any] = {}
        if custom_path:
            meta["custom_path"] = custom_path
        self._send(EventType.PAGEVIEW, meta)
        self._restart_heartbeat()

    def track_section_visibility(self, section_id: str, element: Hashable) -> SectionHandle:
        """
        Track how long ``element`` stays at least half visible.

        The host forwards intersection changes as ``intersection`` page
        events. Detaching early reports the time seen so far.
        """
        return self.sections.attach(section_id, element, on_flush=self._send_section_view)

    def track(self, event_type: EventType | str, meta: Optional[dict[str, Any]] = None) -> None:
        try:
            event_type = EventType(event_type)
        except ValueError:
            logger.warning("analytics_unknown_event_type", event_type=event_type)
            return
        self._send(event_type, dict(meta or {}))

    def track_report_view(self, report_id: str, auction_id: Optional[str] = None) -> None:
        self._send(
            EventType.VIEW_REPORT,
            {"report_id": report_id, "auction_id": auction_id, "timestamp": epoch_ms()},
        )

    def track_report_download(self, report_id: str, format: str = "pdf") -> None:
        self._send(
            EventType.DOWNLOAD_REPORT,
            {"report_id": report_id, "format": format, "timestamp": epoch_ms()},
        )

    def track_bid_click(self, producer_name: str, auction_id: Optional[str] = None) -> None:
        self._send(
            EventType.BID_CLICK,
            {"producer_name": producer_name, "auction_id": auction_id, "timestamp": epoch_ms()},
        )

    def track_web_vital(self, name: str, value: float, rating: WebVitalRating) -> None:
        self._send(
            EventType.WEB_VITAL,
            {"name": name, "value": value, "rating": rating, "timestamp": epoch_ms()},
        )

    async def prompt_install(self) -> bool:
        """Show the deferred install prompt. True if the user accepted."""
        prompt = self._deferred_prompt
        if prompt is None:
            return False
        self._deferred_prompt = None
        try:
            prompt.prompt()
            outcome = await prompt.user_choice()
        except Exception as e:
            logger.warning("install_prompt_failed", error=str(e))
            return False
        self._send(EventType.PWA_PROMPT_RESULT, {"outcome": outcome})
        return outcome == "accepted"

    # Listeners

    def _on_visibility_change(self) -> None:
        if self.page.visible:
            self._restart_heartbeat()
        else:
            self.heartbeat.stop()

    def _on_unload(self) -> None:
        self.heartbeat.stop()
        self._flush_sections()

    def _on_scroll(self) -> None:
        self._cancel_scroll_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._check_scroll_depth()
            return
        self._scroll_timer = loop.call_later(self.settings.scroll_debounce, self._check_scroll_depth)

    def _on_install_prompt(self, prompt: InstallPrompt) -> None:
        self._deferred_prompt = prompt
        self._send(EventType.PWA_PROMPT_SHOWN)

    def _on_app_installed(self) -> None:
        self._send(EventType.PWA_INSTALL)

    def _on_error(
        self,
        message: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        colno: Optional[int] = None,
    ) -> None:
        self._send(
            EventType.JS_ERROR,
            {"message": message, "filename": filename, "lineno": lineno, "colno": colno},
        )

    def _on_unhandled_rejection(self, reason: Any = None) -> None:
        self._send(
            EventType.JS_ERROR,
            {
                "message": "Unhandled Promise Rejection",
                "reason": None if reason is None else str(reason),
            },
        )

    def _on_heartbeat(self, seconds_on_page: int) -> None:
        self._send(
            EventType.HEARTBEAT,
            {
                "seconds_on_page": seconds_on_page,
                "page_start_time": self.page_start_time,
            },
            duration_ms=seconds_on_page * 1000,
        )

    # Internals

    def _restart_heartbeat(self) -> None:
        self.page_start_time = epoch_ms()
        if self.page.visible:
            self.heartbeat.start()
        else:
            self.heartbeat.stop()

    def _cancel_scroll_timer(self) -> None:
        if self._scroll_timer is not None:
            self._scroll_timer.cancel()
            self._scroll_timer = None

    def _check_scroll_depth(self) -> None:
        self._scroll_timer = None
        reached = self.scroll_depth.observe(
            self.page.scroll_top,
            self.page.viewport_height,
            self.page.document_height,
        )
        for percent in reached:
            self._send(EventType.SCROLL_DEPTH, {"percent": percent})

    def _flush_sections(self) -> None:
        for section_id, ms_visible in self.sections.flush():
            self._send_section_view(section_id, ms_visible)

    def _send_section_view(self, section_id: str, ms_visible: int) -> None:
        self._send(
            EventType.SECTION_VIEW,
            {"section_id": section_id, "ms_visible": ms_visible},
            duration_ms=ms_visible,
        )

    def should_track(self) -> bool:
        if self.settings.respect_dnt and self.page.do_not_track:
            return False
        return not self.page.is_under(self.settings.admin_prefix)

    def build_payload(
        self,
        event_type: EventType,
        meta: Optional[dict[str, Any]] = None,
        *,
        duration_ms: Optional[int] = None,
    ) -> dict[str, Any]:
        page = self.page
        beacon = BeaconPayload(
            session_id=self.session_id,
            type=event_type,
            path=page.full_path,
            page_title=page.title,
            referrer=page.referrer or None,
            ua=page.user_agent,
            lang=page.language,
            tz=page.timezone,
            utm=UtmParams(**page.utm()),
            screen_w=page.screen_width,
            screen_h=page.screen_height,
            duration_ms=duration_ms,
            meta=meta or {},
        )
        return beacon.to_wire()

    def _send(
        self,
        event_type: EventType,
        meta: Optional[dict[str, Any]] = None,
        *,
        duration_ms: Optional[int] = None,
    ) -> None:
        if not self.should_track():
            return
        try:
            payload = self.build_payload(event_type, meta, duration_ms=duration_ms)
            if self.settings.debug:
                logger.debug("analytics_event", event_type=event_type.value, payload=payload)

            url = self.settings.endpoint_url
            # Heartbeats may be lost; everything else should survive unload
            if event_type is EventType.HEARTBEAT or not self._transport.beacon(url, payload):
                self._transport.post(url, payload)
        except Exception as e:
            logger.warning("analytics_send_failed", event_type=event_type.value, error=str(e))

