"""
Durable client storage for the pseudonymous session id.
"""
from __future__ import annotations

import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Protocol

import structlog

logger = structlog.get_logger()


class StorageError(Exception):
    """Storage is unavailable (blocked, read-only, corrupt)."""


class Storage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Storage that lasts as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """
    Key/value strings persisted in a small JSON file.

    Writes go through a temporary file and an atomic rename.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(str(e)) from e
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"corrupt storage file {self.path}") from e
        if not isinstance(data, dict):
            raise StorageError(f"unexpected storage content in {self.path}")
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-")
        except OSError as e:
            raise StorageError(str(e)) from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            Path(tmp).unlink(missing_ok=True)
            raise StorageError(str(e)) from e


def get_or_create_session_id(storage: Storage, key: str) -> str:
    """
    Stored session id, or a new UUID4 persisted under ``key``.

    When storage is unusable the new id lives only as long as the tracker.
    """
    try:
        existing = storage.get(key)
    except StorageError as e:
        logger.warning("session_storage_unavailable", error=str(e))
        return str(uuid.uuid4())
    if existing:
        return existing

    session_id = str(uuid.uuid4())
    try:
        storage.set(key, session_id)
    except StorageError as e:
        logger.warning("session_storage_unavailable", error=str(e))
    return session_id
