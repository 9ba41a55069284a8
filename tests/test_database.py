import pytest

from metricserver.storage.database import DatabaseStorage, StorageError


@pytest.fixture
def db(tmp_path):
    storage = DatabaseStorage(str(tmp_path / "metrics.db"))
    yield storage
    storage.close()


def test_new_database_is_empty(db):
    assert db.load() == {}


def test_save_then_load(db):
    data = {"cpu": 42.5, "memory": 75.0}
    db.save(data)
    assert db.load() == data


def test_save_upserts_existing_names(db):
    db.save({"cpu": 42.5, "memory": 75.0})
    db.save({"cpu": 43.5})
    assert db.load() == {"cpu": 43.5, "memory": 75.0}


def test_empty_save_changes_nothing(db):
    db.save({"cpu": 42.5})
    db.save({})
    assert db.load() == {"cpu": 42.5}


def test_data_persists_across_connections(tmp_path):
    path = str(tmp_path / "metrics.db")
    with DatabaseStorage(path) as first:
        first.save({"cpu": 42.5})
    with DatabaseStorage(path) as second:
        assert second.load() == {"cpu": 42.5}


def test_memory_database(tmp_path):
    with DatabaseStorage(":memory:") as storage:
        storage.save({"cpu": 42.5})
        assert storage.load() == {"cpu": 42.5}


def test_failed_save_rolls_back(db):
    db.save({"cpu": 42.5})
    with pytest.raises(StorageError, match="exec tx error"):
        db.save({"memory": 75.0, "bad": "not a number"})
    assert db.load() == {"cpu": 42.5}


def test_save_after_close_fails(tmp_path):
    storage = DatabaseStorage(str(tmp_path / "metrics.db"))
    storage.close()
    with pytest.raises(StorageError, match="failed to init transaction"):
        storage.save({"cpu": 42.5})


def test_close_is_idempotent(tmp_path):
    storage = DatabaseStorage(str(tmp_path / "metrics.db"))
    storage.close()
    storage.close()
    with pytest.raises(StorageError):
        storage.load()


def test_context_manager_closes(tmp_path):
    with DatabaseStorage(str(tmp_path / "metrics.db")) as storage:
        storage.save({"cpu": 42.5})
    with pytest.raises(StorageError):
        storage.save({"cpu": 1.0})


def test_empty_dsn_is_rejected():
    with pytest.raises(StorageError, match="failed to parse database config"):
        DatabaseStorage("")


def test_unreachable_location_is_rejected(tmp_path):
    with pytest.raises(StorageError):
        DatabaseStorage(str(tmp_path / "missing" / "dir" / "metrics.db"))