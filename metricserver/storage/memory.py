"""Thread-safe in-memory metric store."""

from __future__ import annotations

import threading


class MemStorage:
    """Holds the latest value of every metric by name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, float] = {}

    def set(self, name: str, value: float) -> None:
        """Store ``value`` under ``name``, replacing any previous value."""
        with self._lock:
            self._data[name] = value

    def snapshot(self) -> dict[str, float]:
        """Return a copy of all current values."""
        with self._lock:
            return dict(self._data)