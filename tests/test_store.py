import sqlite3
import threading
from datetime import datetime, timedelta, timezone

import pytest

import store as store_module
from store import EventStore, parse_timestamp


@pytest.fixture
def store(tmp_path):
    s = EventStore(str(tmp_path / "events.db"))
    s.init_db()
    return s


def insert_raw(store, *values):
    with sqlite3.connect(store.path) as con:
        con.executemany("INSERT INTO events (ts) VALUES (?)", [(v,) for v in values])
        con.commit()


def test_empty_database_loads_nothing(store):
    assert store.load() == []
    assert store.skipped == 0


def test_logged_events_survive_reload(store):
    first = datetime(2024, 2, 1, 0, 1, 30)
    second = datetime(2024, 2, 1, 0, 1, 30)  # same instant twice counts twice
    assert store.log_event(first)
    assert store.log_event(second)

    reopened = EventStore(store.path)
    assert reopened.load() == [first, second]


def test_log_event_defaults_to_now(store):
    before = datetime.now()
    store.log_event()
    assert before <= store.events[-1] <= datetime.now()


def test_malformed_rows_are_skipped(store, caplog):
    insert_raw(store, "2024-01-31T23:59:00", "not a date", "2024-02-01T00:01:00")
    with caplog.at_level("WARNING"):
        events = store.load()
    assert events == [datetime(2024, 1, 31, 23, 59), datetime(2024, 2, 1, 0, 1)]
    assert store.skipped == 1
    assert "not a date" in caplog.text


def test_aware_timestamps_become_local(store):
    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=3)))
    insert_raw(store, aware.isoformat())
    assert store.load() == [aware.astimezone().replace(tzinfo=None)]


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("31/01/2024")


def test_save_replaces_stored_list(store):
    store.log_event(datetime(2024, 1, 1, 8, 0))
    assert store.save([datetime(2024, 3, 3, 3, 3)])
    assert store.read_rows() == ["2024-03-03T03:03:00"]


def test_save_failure_keeps_memory_and_retries(store, monkeypatch):
    def broken_connect(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(store_module.sqlite3, "connect", broken_connect)
    assert store.log_event(datetime(2024, 1, 1, 9, 0)) is False
    assert store.dirty
    assert len(store.events) == 1

    monkeypatch.undo()
    assert store.log_event(datetime(2024, 1, 1, 10, 0))
    assert not store.dirty
    assert store.read_rows() == ["2024-01-01T09:00:00", "2024-01-01T10:00:00"]


def test_snapshot_is_a_copy(store):
    store.log_event(datetime(2024, 1, 1, 9, 0))
    snap = store.snapshot()
    store.log_event(datetime(2024, 1, 1, 10, 0))
    assert len(snap) == 1
    assert isinstance(snap, tuple)


def test_concurrent_logging_keeps_every_event(store):
    results = []

    def worker(hour):
        for minute in range(10):
            results.append(store.log_event(datetime(2024, 1, 1, hour, minute)))

    threads = [threading.Thread(target=worker, args=(h,)) for h in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [True] * 80
    assert len(store.snapshot()) == 80
    assert len(store.read_rows()) == 80
