"""
Client tracker: session id, page lifecycle signals and beacon delivery.

Importing this package does not load the collector's settings or
database layer.
"""
from wool_analytics.tracker.client import InstallPrompt, Tracker
from wool_analytics.tracker.config import TrackerSettings
from wool_analytics.tracker.context import current_tracker, use_tracker
from wool_analytics.tracker.page import Page, PageEvents
from wool_analytics.tracker.sections import SectionHandle
from wool_analytics.tracker.storage import JsonFileStorage, MemoryStorage
from wool_analytics.tracker.transport import HttpxTransport, Transport

__all__ = [
    "Tracker",
    "TrackerSettings",
    "InstallPrompt",
    "Page",
    "PageEvents",
    "SectionHandle",
    "MemoryStorage",
    "JsonFileStorage",
    "HttpxTransport",
    "Transport",
    "current_tracker",
    "use_tracker",
]
