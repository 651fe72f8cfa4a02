"""
Services package for the ingestion pipeline.
"""
from wool_analytics.services.bot_filter import is_bot
from wool_analytics.services.channel import derive_channel
from wool_analytics.services.enrichment import (
    Enrichment,
    GeoHints,
    daily_ip_hash,
    enrich,
    extract_client_ip,
    extract_geo,
    is_internal_traffic,
)
from wool_analytics.services.ingestion import PersistenceError, record_beacon

__all__ = [
    "is_bot",
    "derive_channel",
    "Enrichment",
    "GeoHints",
    "daily_ip_hash",
    "enrich",
    "extract_client_ip",
    "extract_geo",
    "is_internal_traffic",
    "PersistenceError",
    "record_beacon",
]
