"""Application wiring: HTTP server, flusher and database, with graceful shutdown."""

from __future__ import annotations

import logging
import queue
import signal
import sys
import threading
from typing import Callable, Sequence

from metricserver.config import Config, ConfigError, load_config
from metricserver.flusher import Flusher
from metricserver.storage.database import DatabaseStorage, StorageError
from metricserver.storage.memory import MemStorage
from metricserver.web.server import Server

log = logging.getLogger(__name__)

_SHUTDOWN_TIMEOUT = 30.0
_POLL_INTERVAL = 0.1


def _wrap(prefix: str, exc: BaseException) -> RuntimeError:
    error = RuntimeError(f"{prefix}: {exc}")
    error.__cause__ = exc
    return error


def _install_signal_handlers(stop_event: threading.Event) -> Callable[[], None]:
    """Set ``stop_event`` on SIGINT/SIGTERM; return a function restoring the old handlers."""
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    def on_signal(signum: int, frame: object) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}

    def restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return restore


class App:
    """Owns the server, the flusher and the database and runs them together."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.mem_storage = MemStorage()
        self.db = DatabaseStorage(config.pg_dsn)
        try:
            self.server = Server(config, self.mem_storage)
            self.flusher = Flusher(config.flush_interval, self.mem_storage, self.db)
        except Exception:
            self.db.close()
            raise
        self._stop = threading.Event()
        self._errors: queue.SimpleQueue[RuntimeError] = queue.SimpleQueue()
        self._flusher_thread: threading.Thread | None = None

    def _run_server(self) -> None:
        try:
            self.server.run()
        except Exception as exc:
            self._errors.put(_wrap("server error", exc))

    def _run_flusher(self) -> None:
        log.info("Starting metrics flusher")
        try:
            self.flusher.run(self._stop)
        except Exception as exc:
            self._errors.put(_wrap("flusher error", exc))

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Run until ``stop_event`` is set (or a termination signal arrives), then shut down."""
        if stop_event is None:
            stop_event = threading.Event()
            restore = _install_signal_handlers(stop_event)
        else:
            restore = lambda: None  # noqa: E731

        try:
            threading.Thread(target=self._run_server, daemon=True).start()
            self._flusher_thread = threading.Thread(target=self._run_flusher, daemon=True)
            self._flusher_thread.start()

            while not stop_event.is_set():
                try:
                    error = self._errors.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    continue
                log.error("application error: %s", error)
                try:
                    self.shutdown()
                except Exception as exc:
                    log.warning("cleanup after error failed: %s", exc)
                raise error

            log.info("application shutdown initiated")
            self.shutdown()
        finally:
            restore()

    def shutdown(self) -> None:
        """Stop the server, run the final flush and close the database."""
        try:
            self.server.shutdown(_SHUTDOWN_TIMEOUT)
        finally:
            self._stop.set()
            if self._flusher_thread is not None:
                self._flusher_thread.join(_SHUTDOWN_TIMEOUT)
            while True:
                try:
                    log.error("%s", self._errors.get_nowait())
                except queue.Empty:
                    break
            self.db.close()
        log.info("Application shutdown complete")


def main(argv: Sequence[str] | None = None) -> int:
    """Load the configuration and run the application; return the exit status."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        config = load_config(argv)
    except ConfigError as exc:
        log.error("[main] failed to load config: %s", exc)
        return 1

    try:
        application = App(config)
    except (StorageError, OSError, ValueError) as exc:
        log.error("[main] failed to initialize app: %s", exc)
        return 1

    try:
        application.run()
    except Exception as exc:
        log.error("[main] application exited with error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())