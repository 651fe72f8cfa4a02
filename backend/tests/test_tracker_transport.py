"""
Tests for beacon delivery over httpx.
"""
import asyncio
import json

import httpx
import pytest
from pydantic import ValidationError

from wool_analytics.tracker.config import TrackerSettings
from wool_analytics.tracker.transport import HttpxTransport

ORIGIN = "https://woolmarketreport.netlify.app"
PAYLOAD = {"session_id": "abc", "type": "pageview", "path": "/2025-01"}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://report.example")


async def test_beacon_is_delivered_before_close():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    async with _client(handler) as client:
        transport = HttpxTransport(client, origin=ORIGIN)

        assert transport.beacon("/api/analytics", PAYLOAD) is True
        await transport.aclose()

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/analytics"
        assert request.headers["origin"] == ORIGIN
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == PAYLOAD
        assert not client.is_closed


async def test_post_is_cancelled_on_close():
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(10)
        return httpx.Response(200)

    async with _client(handler) as client:
        transport = HttpxTransport(client)
        transport.post("/api/analytics", {**PAYLOAD, "type": "heartbeat"})
        await asyncio.wait_for(started.wait(), timeout=1)

        await asyncio.wait_for(transport.aclose(), timeout=1)

        assert transport.pending == 0


async def test_slow_beacons_are_dropped_after_drain_timeout():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200)

    async with _client(handler) as client:
        transport = HttpxTransport(client, drain_timeout=0.05)
        transport.beacon("/api/analytics", PAYLOAD)

        await asyncio.wait_for(transport.aclose(), timeout=1)

        assert transport.pending == 0


async def test_network_errors_are_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        transport = HttpxTransport(client)
        transport.beacon("/api/analytics", PAYLOAD)
        transport.post("/api/analytics", PAYLOAD)

        await transport.aclose()


async def test_rejected_beacons_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, text="Rate Limited")

    async with _client(handler) as client:
        transport = HttpxTransport(client)
        transport.beacon("/api/analytics", PAYLOAD)
        await transport.aclose()

    assert len(calls) == 1


async def test_nothing_is_queued_after_close():
    async with _client(lambda request: httpx.Response(200)) as client:
        transport = HttpxTransport(client)
        await transport.aclose()

        assert transport.beacon("/api/analytics", PAYLOAD) is False
        transport.post("/api/analytics", PAYLOAD)
        assert transport.pending == 0


async def test_owned_client_is_closed():
    transport = HttpxTransport(base_url="https://report.example")
    await transport.aclose()

    assert transport._client.is_closed


def test_beacon_without_event_loop_is_refused():
    transport = HttpxTransport(_client(lambda request: httpx.Response(200)))

    assert transport.beacon("/api/analytics", PAYLOAD) is False
    assert transport.pending == 0


async def test_default_settings_reach_the_collector():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    settings = TrackerSettings()
    transport = HttpxTransport.from_settings(settings, transport=httpx.MockTransport(handler))

    assert transport.beacon(settings.endpoint_url, PAYLOAD) is True
    await transport.aclose()

    assert len(seen) == 1
    assert str(seen[0].url) == "http://localhost:8000/api/analytics"
    assert seen[0].headers["origin"] == settings.origin


async def test_absolute_endpoint_without_base_url():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    settings = TrackerSettings(base_url="", endpoint_url="https://collector.example/api/analytics")
    transport = HttpxTransport.from_settings(settings, transport=httpx.MockTransport(handler))

    transport.beacon(settings.endpoint_url, PAYLOAD)
    await transport.aclose()

    assert [str(request.url) for request in seen] == ["https://collector.example/api/analytics"]


def test_settings_without_absolute_target_are_rejected():
    with pytest.raises(ValidationError):
        TrackerSettings(base_url="", endpoint_url="/api/analytics")


async def test_relative_url_without_base_is_logged_not_raised():
    transport = HttpxTransport()
    transport.beacon("/api/analytics", PAYLOAD)

    await transport.aclose()

    assert transport.pending == 0
