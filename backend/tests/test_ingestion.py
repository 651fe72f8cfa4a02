"""
Tests for beacon persistence: repositories and the ingestion service.
"""
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from wool_analytics.core.database import Base
from wool_analytics.repositories import EventRepository, SessionRepository
from wool_analytics.schemas.beacon import BeaconPayload
from wool_analytics.services.enrichment import Enrichment, GeoHints
from wool_analytics.services.ingestion import PersistenceError, record_beacon

NOW = datetime(2025, 1, 15, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
async def db_session(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ingestion.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def enrichment() -> Enrichment:
    return Enrichment(
        client_ip="41.13.200.7",
        ip_hash="a" * 64,
        geo=GeoHints(country="ZA", region="EC", city="Gqeberha"),
        is_internal=False,
    )


async def test_session_upsert_keeps_one_row(db_session):
    sessions = SessionRepository(db_session)

    await sessions.upsert("abc", last_seen=NOW, user_agent="first", country="ZA")
    await sessions.upsert("abc", last_seen=NOW + timedelta(minutes=5), user_agent="second", is_internal=True)
    await db_session.commit()

    assert await sessions.count() == 1
    session = await sessions.get_by_id("abc")
    assert session.user_agent == "second"
    assert session.is_internal is True
    assert session.last_seen.replace(tzinfo=None) == (NOW + timedelta(minutes=5)).replace(tzinfo=None)
    assert session.first_seen is not None


async def test_record_beacon(db_session, enrichment):
    beacon = BeaconPayload(
        session_id="abc",
        type="scroll_depth",
        path="/2025-01",
        referrer="https://www.google.com/",
        ua="Mozilla/5.0",
        lang="en-ZA",
        utm={},
        meta={"percent": 50},
    )

    event_id = await record_beacon(db_session, beacon, enrichment, NOW)

    assert isinstance(event_id, UUID)
    session = await SessionRepository(db_session).get_by_id("abc")
    assert session.ip_hash == "a" * 64
    assert session.city == "Gqeberha"
    assert session.language == "en-ZA"

    [event] = await EventRepository(db_session).list_for_session("abc")
    assert event.id == event_id
    assert event.type == "scroll_depth"
    assert event.channel == "Organic"
    assert event.utm is None
    assert event.meta == {"percent": 50}


async def test_events_listed_oldest_first(db_session, enrichment):
    for minutes, event_type in ((0, "pageview"), (1, "heartbeat"), (2, "section_view")):
        beacon = BeaconPayload(session_id="abc", type=event_type)
        await record_beacon(db_session, beacon, enrichment, NOW + timedelta(minutes=minutes))

    events = await EventRepository(db_session).list_for_session("abc", limit=2)

    assert [e.type for e in events] == ["pageview", "heartbeat"]
    assert await EventRepository(db_session).count() == 3


async def test_session_upsert_failure(db_session, enrichment, monkeypatch):
    async def failing_upsert(self, session_id, **values):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(SessionRepository, "upsert", failing_upsert)

    with pytest.raises(PersistenceError) as exc_info:
        await record_beacon(db_session, BeaconPayload(session_id="abc"), enrichment, NOW)

    assert exc_info.value.stage == "session_upsert"
    assert await EventRepository(db_session).count() == 0


async def test_event_insert_failure_keeps_session(db_session, enrichment, monkeypatch):
    async def failing_create(self, obj_in):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(EventRepository, "create", failing_create)

    with pytest.raises(PersistenceError) as exc_info:
        await record_beacon(db_session, BeaconPayload(session_id="abc"), enrichment, NOW)

    assert exc_info.value.stage == "event_insert"
    assert await SessionRepository(db_session).count() == 1
