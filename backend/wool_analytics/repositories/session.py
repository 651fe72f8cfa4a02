"""
Analytics session repository.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from wool_analytics.models.analytics import AnalyticsSession
from wool_analytics.repositories.base import BaseRepository

# Refreshed on every beacon (last write wins)
_UPSERT_COLUMNS = (
    "user_agent",
    "language",
    "timezone",
    "ip_hash",
    "country",
    "region",
    "city",
    "is_internal",
    "last_seen",
)


class SessionRepository(BaseRepository[AnalyticsSession]):
    """Repository for AnalyticsSession operations."""

    model = AnalyticsSession

    async def upsert(
        self,
        session_id: str,
        *,
        last_seen: datetime,
        user_agent: Optional[str] = None,
        language: Optional[str] = None,
        timezone: Optional[str] = None,
        ip_hash: Optional[str] = None,
        country: Optional[str] = None,
        region: Optional[str] = None,
        city: Optional[str] = None,
        is_internal: bool = False,
    ) -> None:
        """
        Insert the session or overwrite its enrichment fields.

        Uses a single INSERT ... ON CONFLICT statement so concurrent
        beacons for one session never produce duplicate rows.
        """
        values: dict[str, Any] = {
            "session_id": session_id,
            "user_agent": user_agent,
            "language": language,
            "timezone": timezone,
            "ip_hash": ip_hash,
            "country": country,
            "region": region,
            "city": city,
            "is_internal": is_internal,
            "last_seen": last_seen,
        }

        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(AnalyticsSession).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AnalyticsSession.session_id],
            set_={column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
        )
        await self.session.execute(stmt)
