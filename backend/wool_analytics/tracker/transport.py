"""
Non-blocking beacon delivery over httpx.

``beacon`` is the unload-safe path: pending beacons are drained when the
transport closes. ``post`` is a plain keep-alive request and is cancelled
on close. Neither ever raises into the caller.
"""
from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, Optional, Protocol

import httpx
import structlog

if TYPE_CHECKING:
    from wool_analytics.tracker.config import TrackerSettings

logger = structlog.get_logger()


class Transport(Protocol):
    def beacon(self, url: str, payload: dict[str, Any]) -> bool: ...

    def post(self, url: str, payload: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Fire-and-forget JSON POSTs on the running event loop."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = "",
        origin: Optional[str] = None,
        timeout: float = 5.0,
        drain_timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._headers = {"content-type": "application/json"}
        if origin:
            self._headers["origin"] = origin
        self.drain_timeout = drain_timeout
        self._beacons: set[asyncio.Task[None]] = set()
        self._requests: set[asyncio.Task[None]] = set()
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: "TrackerSettings",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpxTransport":
        return cls(
            base_url=settings.base_url,
            origin=settings.origin,
            timeout=settings.request_timeout,
            drain_timeout=settings.drain_timeout,
            transport=transport,
        )

    @property
    def pending(self) -> int:
        return len(self._beacons) + len(self._requests)

    def beacon(self, url: str, payload: dict[str, Any]) -> bool:
        """Queue a beacon. False when it could not be queued."""
        return self._spawn(self._deliver(url, payload), self._beacons)

    def post(self, url: str, payload: dict[str, Any]) -> None:
        self._spawn(self._deliver(url, payload), self._requests)

    def _spawn(self, coro: Coroutine[Any, Any, None], bucket: set[asyncio.Task[None]]) -> bool:
        if self._closed:
            coro.close()
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("analytics_delivery_skipped", reason="no_event_loop")
            return False
        task = loop.create_task(coro)
        bucket.add(task)
        task.add_done_callback(bucket.discard)
        return True

    async def _deliver(self, url: str, payload: dict[str, Any]) -> None:
        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            logger.warning("analytics_endpoint_misconfigured", url=url, error=str(e))
            return
        except httpx.HTTPError as e:
            logger.debug("analytics_delivery_failed", error=str(e), event_type=payload.get("type"))
            return
        except (TypeError, ValueError) as e:
            logger.warning("analytics_payload_unserializable", error=str(e), event_type=payload.get("type"))
            return
        if response.status_code >= 400:
            logger.debug(
                "analytics_delivery_rejected",
                status_code=response.status_code,
                event_type=payload.get("type"),
            )

    async def aclose(self) -> None:
        """Drain queued beacons, drop keep-alive requests, close the client."""
        self._closed = True
        for task in list(self._requests):
            task.cancel()

        beacons = list(self._beacons)
        if beacons:
            _, still_pending = await asyncio.wait(beacons, timeout=self.drain_timeout)
            for task in still_pending:
                task.cancel()
            if still_pending:
                logger.debug("analytics_beacons_dropped", count=len(still_pending))

        leftovers = list(self._requests) + list(self._beacons)
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)

        if self._owns_client:
            await self._client.aclose()
