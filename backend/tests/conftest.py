"""
Shared fixtures.

Settings and the async engine are created at import time, so the test
environment is set up before anything from wool_analytics is imported.
"""
import os
import tempfile
from pathlib import Path

_DB_PATH = Path(tempfile.mkdtemp(prefix="wool-analytics-tests-")) / "analytics.db"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["IP_SALT"] = "test-salt"
os.environ["ALLOWED_ORIGINS"] = "https://woolmarketreport.netlify.app,http://localhost:5173"
os.environ["ENVIRONMENT"] = "development"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

import wool_analytics.models  # noqa: E402,F401
from wool_analytics.core.database import Base  # noqa: E402
from wool_analytics.main import create_app  # noqa: E402

ALLOWED_ORIGIN = "https://woolmarketreport.netlify.app"
BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@pytest.fixture
def db_engine():
    """Synchronous engine on the same SQLite file, with fresh tables."""
    engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def app(db_engine):
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def beacon_headers() -> dict:
    return {
        "origin": ALLOWED_ORIGIN,
        "content-type": "application/json",
        "x-forwarded-for": "41.13.200.7",
    }


@pytest.fixture
def pageview() -> dict:
    return {
        "session_id": "abc",
        "type": "pageview",
        "path": "/2025-01",
        "ua": BROWSER_UA,
    }


class RecordingTransport:
    """Tracker transport that keeps every payload in send order with the path it took."""

    def __init__(self, beacon_ok: bool = True) -> None:
        self.beacon_ok = beacon_ok
        self.sent: list[tuple[str, dict]] = []
        self.closed = False

    def beacon(self, url, payload):
        if self.beacon_ok:
            self.sent.append(("beacon", payload))
        return self.beacon_ok

    def post(self, url, payload):
        self.sent.append(("post", payload))

    async def aclose(self):
        self.closed = True

    def types(self) -> list[str]:
        return [payload["type"] for _, payload in self.sent]

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for _, payload in self.sent if payload["type"] == event_type]
