import threading

import pytest

from metricserver.flusher import FlushError, Flusher


class FakeMemStorage:
    def __init__(self, metrics):
        self.metrics = metrics
        self.calls = 0

    def snapshot(self):
        self.calls += 1
        return dict(self.metrics)


class FakeDatabase:
    def __init__(self, error=None):
        self.error = error
        self.saved = []

    def save(self, data):
        self.saved.append(dict(data))
        if self.error is not None:
            raise self.error


def run_for(flusher, seconds):
    stop = threading.Event()
    timer = threading.Timer(seconds, stop.set)
    timer.start()
    try:
        return flusher.run(stop)
    finally:
        timer.cancel()


def test_successful_flush_on_interval():
    metrics = {"cpu": 43.5, "memory": 75.0}
    mem = FakeMemStorage(metrics)
    db = FakeDatabase()
    result = run_for(Flusher(0.1, mem, db), 0.25)
    assert result is None
    assert mem.calls >= 1
    assert len(db.saved) >= 1
    assert all(saved == metrics for saved in db.saved)


def test_empty_metrics_snapshot():
    mem = FakeMemStorage({})
    db = FakeDatabase()
    run_for(Flusher(0.1, mem, db), 0.25)
    assert mem.calls >= 1
    assert db.saved == []


def test_database_error_during_flush():
    metrics = {"cpu": 42.5}
    mem = FakeMemStorage(metrics)
    db = FakeDatabase(error=RuntimeError("database connection error"))
    with pytest.raises(FlushError) as excinfo:
        run_for(Flusher(0.1, mem, db), 0.25)
    assert "failed to save metrics: database connection error" in str(excinfo.value)
    assert len(db.saved) >= 1
    assert all(saved == metrics for saved in db.saved)


def test_graceful_shutdown_with_successful_final_flush():
    metrics = {"cpu": 42.5}
    mem = FakeMemStorage(metrics)
    db = FakeDatabase()
    run_for(Flusher(1.0, mem, db), 0.05)
    assert mem.calls == 1
    assert db.saved == [metrics]


def test_flush_returns_count():
    metrics = {"cpu": 43.5, "memory": 75.0}
    db = FakeDatabase()
    assert Flusher(1.0, FakeMemStorage(metrics), db).flush() == len(metrics)
    assert db.saved == [metrics]


def test_flush_of_empty_snapshot_saves_nothing():
    db = FakeDatabase()
    assert Flusher(1.0, FakeMemStorage({}), db).flush() == 0
    assert db.saved == []


def test_flush_wraps_errors():
    db = FakeDatabase(error=RuntimeError("database connection error"))
    with pytest.raises(FlushError, match="failed to save metrics: database connection error"):
        Flusher(1.0, FakeMemStorage({"cpu": 42.5}), db).flush()


@pytest.mark.parametrize("interval", [0, -1.0])
def test_non_positive_interval_is_rejected(interval):
    with pytest.raises(ValueError):
        Flusher(interval, FakeMemStorage({}), FakeDatabase())