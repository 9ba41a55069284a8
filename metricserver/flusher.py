"""Periodic transfer of metrics from memory to persistent storage."""

from __future__ import annotations

import logging
import threading
from typing import Mapping, Protocol

log = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    def snapshot(self) -> dict[str, float]: ...


class MetricSink(Protocol):
    def save(self, data: Mapping[str, float]) -> None: ...


class FlushError(Exception):
    """Raised when a snapshot could not be saved."""


class Flusher:
    """Copies in-memory metrics to the database every ``interval`` seconds."""

    def __init__(self, interval: float, mem_storage: SnapshotSource, db: MetricSink) -> None:
        if interval <= 0:
            raise ValueError("flush interval must be positive")
        self.interval = interval
        self.mem_storage = mem_storage
        self.db = db

    def flush(self) -> int:
        """Save the current snapshot and return how many metrics it held."""
        snapshot = self.mem_storage.snapshot()
        if not snapshot:
            return 0
        try:
            self.db.save(snapshot)
        except Exception as exc:
            raise FlushError(f"failed to save metrics: {exc}") from exc
        log.info("Successfully flushed %d metrics", len(snapshot))
        return len(snapshot)

    def run(self, stop_event: threading.Event) -> None:
        """Flush on every tick until ``stop_event`` is set, then flush once more.

        Errors on ticks are logged; an error in the final flush is raised.
        """
        while not stop_event.wait(self.interval):
            try:
                self.flush()
            except FlushError as exc:
                log.error("%s", exc)
        self.flush()