"""
Repository package for data access layer.
"""
from wool_analytics.repositories.base import BaseRepository
from wool_analytics.repositories.event import EventRepository
from wool_analytics.repositories.session import SessionRepository

__all__ = [
    "BaseRepository",
    "SessionRepository",
    "EventRepository",
]
