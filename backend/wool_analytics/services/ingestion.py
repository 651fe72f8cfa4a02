"""
Persistence of accepted beacons: session upsert, then event insert.

The two writes are committed independently. A failed event insert leaves
the refreshed session in place, which is an accepted outcome.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wool_analytics.repositories.event import EventRepository
from wool_analytics.repositories.session import SessionRepository
from wool_analytics.schemas.beacon import BeaconPayload
from wool_analytics.services.channel import derive_channel
from wool_analytics.services.enrichment import Enrichment

logger = structlog.get_logger()


class PersistenceError(Exception):
    """A beacon could not be written to the store."""

    def __init__(self, stage: str, cause: Exception) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


async def record_beacon(
    session: AsyncSession,
    beacon: BeaconPayload,
    enrichment: Enrichment,
    now: datetime,
) -> UUID:
    """
    Write one beacon and return the new event id.

    Raises PersistenceError with stage "session_upsert" or "event_insert".
    """
    sessions = SessionRepository(session)
    events = EventRepository(session)

    try:
        await sessions.upsert(
            beacon.session_id,
            last_seen=now,
            user_agent=beacon.ua,
            language=beacon.lang,
            timezone=beacon.tz,
            ip_hash=enrichment.ip_hash,
            country=enrichment.geo.country,
            region=enrichment.geo.region,
            city=enrichment.geo.city,
            is_internal=enrichment.is_internal,
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("session_upsert_failed", session_id=beacon.session_id, error=str(e))
        raise PersistenceError("session_upsert", e) from e

    utm: Optional[dict] = None
    if beacon.utm is not None and not beacon.utm.is_empty():
        utm = beacon.utm.model_dump(exclude_none=True)

    try:
        event = await events.create(
            {
                "session_id": beacon.session_id,
                "type": beacon.type.value,
                "path": beacon.path,
                "page_title": beacon.page_title,
                "referrer": beacon.referrer,
                "utm": utm,
                "channel": derive_channel(beacon.referrer, beacon.utm).value,
                "screen_w": beacon.screen_w,
                "screen_h": beacon.screen_h,
                "duration_ms": beacon.duration_ms,
                "meta": beacon.meta,
                "created_at": now,
            }
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "event_insert_failed",
            session_id=beacon.session_id,
            event_type=beacon.type.value,
            error=str(e),
        )
        raise PersistenceError("event_insert", e) from e

    logger.debug(
        "beacon_recorded",
        event_id=str(event.id),
        event_type=beacon.type.value,
        session_id=beacon.session_id,
    )
    return event.id
