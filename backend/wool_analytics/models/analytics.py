"""
Analytics session and event models.

One session row per pseudonymous browser, refreshed on every beacon;
one immutable event row per beacon.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from wool_analytics.core.database import Base
from wool_analytics.schemas.beacon import (
    MAX_LANGUAGE_LENGTH,
    MAX_PATH_LENGTH,
    MAX_REFERRER_LENGTH,
    MAX_SESSION_ID_LENGTH,
    MAX_TIMEZONE_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_USER_AGENT_LENGTH,
)

JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class AnalyticsSession(Base):
    """Pseudonymous visitor-device pairing, keyed by the tracker's session id."""

    __tablename__ = "analytics_session"

    session_id: Mapped[str] = mapped_column(
        String(MAX_SESSION_ID_LENGTH),
        primary_key=True,
    )

    # Client reported
    user_agent: Mapped[Optional[str]] = mapped_column(String(MAX_USER_AGENT_LENGTH))
    language: Mapped[Optional[str]] = mapped_column(String(MAX_LANGUAGE_LENGTH))
    timezone: Mapped[Optional[str]] = mapped_column(String(MAX_TIMEZONE_LENGTH))

    # Enrichment (never the raw IP)
    ip_hash: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    country: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    region: Mapped[Optional[str]] = mapped_column(String(128))
    city: Mapped[Optional[str]] = mapped_column(String(128))
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    first_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    last_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )


class AnalyticsEvent(Base):
    """A single tracked occurrence. Written once, never updated."""

    __tablename__ = "analytics_event"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    session_id: Mapped[str] = mapped_column(
        String(MAX_SESSION_ID_LENGTH),
        ForeignKey("analytics_session.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Page context
    path: Mapped[str] = mapped_column(String(MAX_PATH_LENGTH), nullable=False, default="/")
    page_title: Mapped[Optional[str]] = mapped_column(String(MAX_TITLE_LENGTH))
    referrer: Mapped[Optional[str]] = mapped_column(String(MAX_REFERRER_LENGTH))

    # Attribution
    utm: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    channel: Mapped[str] = mapped_column(String(16), nullable=False)

    screen_w: Mapped[Optional[int]] = mapped_column(Integer)
    screen_h: Mapped[Optional[int]] = mapped_column(Integer)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)

    # Type-specific payload (percent, section_id, ms_visible, ...)
    meta: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_analytics_event_created_at", "created_at"),
        Index("idx_analytics_event_type_created_at", "type", "created_at"),
        Index("idx_analytics_event_session_created_at", "session_id", "created_at"),
    )
