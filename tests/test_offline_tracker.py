"""Tests del OfflineTracker (caché en memoria, concurrente)."""

import threading

from bandwidth_api.liveness import OfflineTracker, get_offline_tracker


class TestOfflineTracker:

    def test_add_and_discard(self):
        tracker = OfflineTracker()

        tracker.add("pk-1")
        assert "pk-1" in tracker
        assert len(tracker) == 1

        tracker.discard("pk-1")
        tracker.discard("never-added")
        assert "pk-1" not in tracker
        assert len(tracker) == 0

    def test_apply_reactivates_before_marking_offline(self):
        tracker = OfflineTracker()
        tracker.add("pk-1")
        tracker.add("pk-2")

        tracker.apply(reactivated={"pk-1"}, went_offline={"pk-3"})

        assert tracker.snapshot() == frozenset({"pk-2", "pk-3"})

    def test_concurrent_batches(self):
        tracker = OfflineTracker()
        errors = []

        def worker(worker_id: int) -> None:
            try:
                for i in range(500):
                    key = f"w{worker_id}-{i}"
                    tracker.add(key)
                    assert key in tracker
                    if i % 2 == 0:
                        tracker.discard(key)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(tracker) == 8 * 250

    def test_shared_instance(self):
        OfflineTracker.reset_instance()
        try:
            assert get_offline_tracker() is get_offline_tracker()
        finally:
            OfflineTracker.reset_instance()
