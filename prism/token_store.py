"""Session token storage: an injected store with read/write/clear.

The persisted layout mirrors the browser keys of the web client:
``access_token``, ``refresh_token`` and ``user`` (a JSON object).
"""
from __future__ import annotations

import fcntl
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

from prism.log import get_logger
from prism.models import Identity, Session

log = get_logger(__name__)

SESSION_KEYS: tuple[str, ...] = ("access_token", "refresh_token", "user")

Listener = Callable[[Session], None]


def session_from_raw(data: Any) -> Session:
    """Build a Session from persisted keys; anything malformed reads as absent."""
    if not isinstance(data, dict):
        return Session()
    access = data.get("access_token")
    refresh = data.get("refresh_token")
    return Session(
        access_token=access if isinstance(access, str) and access else None,
        refresh_token=refresh if isinstance(refresh, str) and refresh else None,
        identity=Identity.from_dict(data.get("user") or {}),
    )


def merge_raw(current: dict[str, Any], partial: Session) -> dict[str, Any]:
    merged = {k: v for k, v in current.items() if k in SESSION_KEYS}
    if partial.access_token is not None:
        merged["access_token"] = partial.access_token
    if partial.refresh_token is not None:
        merged["refresh_token"] = partial.refresh_token
    if partial.identity is not None:
        merged["user"] = partial.identity.to_dict()
    return merged


class SessionStore(ABC):
    """Single source of truth for the current Session."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    @abstractmethod
    def read(self) -> Session:
        """Fresh snapshot. Never raises."""

    @abstractmethod
    def write(self, partial: Session) -> Session:
        """Merge the non-None fields of ``partial`` and persist. Returns the new Session."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all session keys in one step."""

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session: Session) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as exc:
                log.warning("Session listener %r failed: %s", listener, exc)


class MemoryTokenStore(SessionStore):
    def __init__(self, initial: Session | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = merge_raw({}, initial) if initial else {}

    def read(self) -> Session:
        return session_from_raw(self._data)

    def write(self, partial: Session) -> Session:
        self._data = merge_raw(self._data, partial)
        session = session_from_raw(self._data)
        self._notify(session)
        return session

    def clear(self) -> None:
        self._data = {}
        self._notify(Session())


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class FileTokenStore(SessionStore):
    """JSON file store shared by every client process using the same path.

    Writes go to a temporary file that replaces the session file, so a reader
    sees either the old or the new content. A sidecar lock file serializes
    read-modify-write cycles between processes.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._lock_path = self.path.with_name(self.path.name + ".lock")
        self._seen_mtime = self._mtime()

    def _mtime(self) -> int | None:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    def _load_raw(self) -> dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                try:
                    data = json.load(f)
                finally:
                    _unlock(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log.warning("Unreadable session file %s: %s", self.path.name, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def read(self) -> Session:
        return session_from_raw(self._load_raw())

    def write(self, partial: Session) -> Session:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "a", encoding="utf-8") as lock:
            _lock(lock)
            try:
                merged = merge_raw(self._load_raw(), partial)
                tmp = self.path.with_name(self.path.name + ".tmp")
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(merged, f)
                os.chmod(tmp, 0o600)
                os.replace(tmp, self.path)
            finally:
                _unlock(lock)
        self._seen_mtime = self._mtime()
        session = session_from_raw(merged)
        self._notify(session)
        log.debug("Session written → %s", self.path.name)
        return session

    def clear(self) -> None:
        if self.path.parent.exists():
            with open(self._lock_path, "a", encoding="utf-8") as lock:
                _lock(lock)
                try:
                    self.path.unlink(missing_ok=True)
                finally:
                    _unlock(lock)
        self._seen_mtime = None
        self._notify(Session())
        log.debug("Session cleared")

    def sync(self) -> bool:
        """Notify listeners if another process changed the file since we last touched it."""
        current = self._mtime()
        if current == self._seen_mtime:
            return False
        self._seen_mtime = current
        self._notify(self.read())
        return True
