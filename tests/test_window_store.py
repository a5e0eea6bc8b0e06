"""Unit tests for the per-identity timestamp store."""

import threading

from app.adapters.rate_limit.window_store import CallerRecord, WindowStore


WINDOW = 1_000
LIMIT = 3


def test_check_and_record_admits_until_limit() -> None:
    store = WindowStore()

    assert store.check_and_record("a", 0, WINDOW, LIMIT) == (True, 1)
    assert store.check_and_record("a", 0, WINDOW, LIMIT) == (True, 2)
    assert store.check_and_record("a", 0, WINDOW, LIMIT) == (True, 3)
    assert store.check_and_record("a", 0, WINDOW, LIMIT) == (False, 3)


def test_denied_request_is_not_recorded() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, 1)
    store.check_and_record("a", 10, WINDOW, 1)
    store.check_and_record("a", 20, WINDOW, 1)

    assert store.usage("a", 20, WINDOW, 1) == (1, 0)
    assert store.stats()["tracked_requests"] == 1


def test_timestamp_on_window_boundary_is_still_counted() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, 1)

    assert store.check_and_record("a", 1_000, WINDOW, 1) == (False, 1)
    assert store.check_and_record("a", 1_001, WINDOW, 1) == (True, 1)


def test_usage_prunes_without_recording() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, LIMIT)
    store.check_and_record("a", 500, WINDOW, LIMIT)

    assert store.usage("a", 600, WINDOW, LIMIT) == (2, 1)
    assert store.usage("a", 1_200, WINDOW, LIMIT) == (1, 2)
    assert store.usage("a", 1_200, WINDOW, LIMIT) == (1, 2)
    assert store.usage("a", 2_000, WINDOW, LIMIT) == (0, 3)


def test_usage_of_unknown_identity_does_not_create_record() -> None:
    store = WindowStore()

    assert store.usage("ghost", 0, WINDOW, LIMIT) == (0, LIMIT)
    assert "ghost" not in store
    assert len(store) == 0


def test_sweep_removes_only_quiescent_records() -> None:
    store = WindowStore()
    store.check_and_record("idle", 0, WINDOW, LIMIT)
    store.check_and_record("busy", 0, WINDOW, LIMIT)
    store.check_and_record("busy", 1_500, WINDOW, LIMIT)

    removed = store.sweep(2_000, WINDOW)

    assert removed == 1
    assert "idle" not in store
    assert "busy" in store


def test_sweep_prunes_expired_timestamps_of_kept_records() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, LIMIT)
    store.check_and_record("a", 1_500, WINDOW, LIMIT)

    assert store.sweep(2_400, WINDOW) == 0
    assert "a" in store
    assert store.stats()["tracked_requests"] == 1


def test_first_seen_survives_reuse_of_quiescent_record() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, LIMIT)

    # Quiescent by t=5_000 but touched again before any sweep runs.
    store.check_and_record("a", 5_000, WINDOW, LIMIT)
    record = store._records["a"]

    assert record.first_seen == 0
    assert record.timestamps == [5_000]


def test_removed_identity_gets_fresh_record() -> None:
    store = WindowStore()
    store.check_and_record("a", 0, WINDOW, LIMIT)
    store.sweep(5_000, WINDOW)
    assert "a" not in store

    store.check_and_record("a", 6_000, WINDOW, LIMIT)

    assert store._records["a"].first_seen == 6_000


def test_store_size_converges_to_active_identities_after_churn() -> None:
    store = WindowStore()
    for i in range(200):
        store.check_and_record(f"old-{i}", 0, WINDOW, LIMIT)
    for i in range(5):
        store.check_and_record(f"live-{i}", 10_000, WINDOW, LIMIT)

    store.sweep(10_500, WINDOW)

    assert len(store) == 5
    stats = store.stats()
    assert stats["evictions"] == 200
    assert stats["sweeps"] == 1


def test_caller_record_prune_keeps_unsorted_recent_entries() -> None:
    record = CallerRecord(identity="a", first_seen=0, timestamps=[900, 100, 950, 50])

    assert record.prune(500) == 2
    assert record.timestamps == [900, 950]


def test_concurrent_check_and_record_never_double_admits() -> None:
    store = WindowStore()
    limit = 5
    workers = 64
    barrier = threading.Barrier(workers)
    results: list[bool] = []
    results_lock = threading.Lock()

    def _worker() -> None:
        barrier.wait()
        allowed, _ = store.check_and_record("shared", 100, WINDOW, limit)
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=_worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == limit
    assert results.count(False) == workers - limit


def test_sweep_concurrent_with_traffic_never_loses_admitted_requests() -> None:
    store = WindowStore()
    stop = threading.Event()
    admitted = []

    def _sweeper() -> None:
        while not stop.is_set():
            store.sweep(10_000, WINDOW)

    sweeper = threading.Thread(target=_sweeper)
    sweeper.start()
    try:
        for i in range(500):
            allowed, _ = store.check_and_record(f"id-{i % 7}", 10_000, WINDOW, 1_000)
            admitted.append(allowed)
    finally:
        stop.set()
        sweeper.join()

    assert all(admitted)
    # Every record holds fresh timestamps, so none could have been reclaimed.
    assert len(store) == 7
    assert store.stats()["tracked_requests"] == 500
