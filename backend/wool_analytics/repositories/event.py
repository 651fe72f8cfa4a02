"""
Analytics event repository.
"""
from sqlalchemy import select

from wool_analytics.models.analytics import AnalyticsEvent
from wool_analytics.repositories.base import BaseRepository


class EventRepository(BaseRepository[AnalyticsEvent]):
    """Repository for AnalyticsEvent operations. Events are insert-only."""

    model = AnalyticsEvent

    async def list_for_session(
        self,
        session_id: str,
        *,
        limit: int = 100,
    ) -> list[AnalyticsEvent]:
        """Events of one session, oldest first."""
        stmt = (
            select(AnalyticsEvent)
            .where(AnalyticsEvent.session_id == session_id)
            .order_by(AnalyticsEvent.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
