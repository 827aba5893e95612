"""Shared store of logged-in sessions keyed by ``host_port``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from hikctl.core.errors import UnknownSessionError
from hikctl.core.session import DeviceSession

LOGGER = logging.getLogger(__name__)


def session_key(host: str, port: int) -> str:
    return f"{host}_{port}"


@dataclass
class _Entry:
    session: DeviceSession
    # The SDK is not known to tolerate concurrent calls on one login.
    lock: threading.Lock = field(default_factory=threading.Lock)


class SessionRegistry:
    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def register(self, key: str, session: DeviceSession) -> str:
        """Store ``session`` under ``key``, logging out any session it replaces."""
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = _Entry(session=session)
        if previous is not None and previous.session is not session:
            LOGGER.debug("Replacing session %s", key)
            with previous.lock:
                previous.session.logout()
        return key

    def _entry(self, key: str) -> _Entry:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            raise UnknownSessionError(f"Device '{key}' not found. Please login first.")
        return entry

    @contextmanager
    def acquire(self, key: str) -> Iterator[DeviceSession]:
        """Hold the per-session lock while the caller uses the session."""
        entry = self._entry(key)
        with entry.lock:
            yield entry.session

    def remove(self, key: str) -> None:
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None:
            raise UnknownSessionError(f"Device '{key}' not found. Please login first.")
        with entry.lock:
            entry.session.logout()

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            with entry.lock:
                entry.session.logout()
