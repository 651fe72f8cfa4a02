"""
Pydantic schemas package.
"""
from wool_analytics.schemas.beacon import (
    BeaconPayload,
    Channel,
    EventType,
    UtmParams,
)

__all__ = [
    "BeaconPayload",
    "Channel",
    "EventType",
    "UtmParams",
]
