"""Session and settings persistence.

Two interchangeable backends hold string values by key: a durable
:class:`FileBackend` and a volatile :class:`MemoryBackend`.  A
:class:`SessionStore` is built with a primary and a fallback backend and
switches to the fallback the first time the primary fails.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, TypeVar

from tremorsense.config import Settings
from tremorsense.models import RecordingSession, validate_record

logger = logging.getLogger(__name__)

SESSIONS_KEY = "sessions"
SETTINGS_KEY = "settings"

T = TypeVar("T")


class StorageError(Exception):
    """A storage operation failed on every available backend."""


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class StorageBackend(ABC):
    """Key/value store of JSON strings."""

    name = "backend"

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""


class MemoryBackend(StorageBackend):
    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileBackend(StorageBackend):
    """One ``<key>.json`` file per key under *directory*.

    Writes go to a temp file in the same directory and are moved into
    place, so a crash never leaves a half-written record.
    """

    name = "file"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SessionStore:
    """Persistence for recording sessions and settings.

    Usage:
        store = SessionStore(FileBackend(data_dir))
        store.save(session)
        sessions = store.load_all()
    """

    def __init__(
        self,
        primary: StorageBackend,
        fallback: StorageBackend | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback if fallback is not None else MemoryBackend()
        self._active = primary

    @property
    def using_fallback(self) -> bool:
        return self._active is not self.primary

    def _run(self, op: Callable[[StorageBackend], T]) -> T:
        """Run *op* on the active backend, switching to the fallback once."""
        try:
            return op(self._active)
        except (OSError, StorageError) as e:
            if self.using_fallback:
                raise StorageError(f"{self._active.name} storage failed: {e}") from e
            logger.warning(
                "%s storage failed (%s); switching to %s storage",
                self.primary.name, e, self.fallback.name,
            )
            self._active = self.fallback

        try:
            return op(self._active)
        except (OSError, StorageError) as e:
            raise StorageError(f"{self._active.name} storage failed: {e}") from e

    # --- sessions ---

    def _read_records(self, backend: StorageBackend) -> list[dict]:
        try:
            data = backend.get(SESSIONS_KEY)
        except UnicodeDecodeError as e:
            logger.error("Session history is not valid UTF-8, ignoring it: %s", e)
            return []
        if not data:
            return []
        try:
            records = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error("Session history is not valid JSON, ignoring it: %s", e)
            return []
        if not isinstance(records, list):
            logger.error("Session history is not a list, ignoring it")
            return []
        return records

    def _write_sessions(self, backend: StorageBackend, sessions: list[RecordingSession]) -> None:
        backend.set(SESSIONS_KEY, json.dumps([s.to_dict() for s in sessions]))

    def _load(self, backend: StorageBackend) -> list[RecordingSession]:
        sessions: list[RecordingSession] = []
        for record in self._read_records(backend):
            if not validate_record(record):
                logger.debug("Dropping malformed session record")
                continue
            try:
                sessions.append(RecordingSession.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Dropping unreadable session %r: %s", record.get("id"), e)
        return sessions

    def load_all(self) -> list[RecordingSession]:
        """Load every valid session, in the order they were saved."""
        return self._run(self._load)

    def get(self, session_id: str) -> RecordingSession | None:
        for session in self.load_all():
            if session.id == session_id:
                return session
        return None

    def save(self, session: RecordingSession) -> None:
        def op(backend: StorageBackend) -> None:
            sessions = self._load(backend)
            sessions.append(session)
            self._write_sessions(backend, sessions)

        self._run(op)
        logger.info("Saved session %s (%d samples)", session.id, len(session.magnitude))

    def delete_many(self, session_ids: Iterable[str]) -> int:
        """Delete sessions by id; returns the number removed."""
        ids = set(session_ids)

        def op(backend: StorageBackend) -> int:
            sessions = self._load(backend)
            kept = [s for s in sessions if s.id not in ids]
            self._write_sessions(backend, kept)
            return len(sessions) - len(kept)

        removed = self._run(op)
        logger.info("Deleted %d session(s)", removed)
        return removed

    def delete(self, session_id: str) -> bool:
        return self.delete_many([session_id]) > 0

    def clear_all(self) -> None:
        self._run(lambda backend: backend.remove(SESSIONS_KEY))
        logger.info("Cleared session history")

    # --- settings ---

    def load_settings(self) -> Settings:
        def op(backend: StorageBackend) -> Settings:
            try:
                data = backend.get(SETTINGS_KEY)
            except UnicodeDecodeError as e:
                logger.error("Settings are not valid UTF-8, using defaults: %s", e)
                return Settings()
            if not data:
                return Settings()
            try:
                return Settings.from_dict(json.loads(data))
            except json.JSONDecodeError as e:
                logger.error("Settings are not valid JSON, using defaults: %s", e)
                return Settings()

        return self._run(op)

    def save_settings(self, settings: Settings) -> None:
        self._run(lambda backend: backend.set(SETTINGS_KEY, json.dumps(settings.to_dict())))
