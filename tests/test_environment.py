"""
Tests for door observations: time buckets and the probability store.

Run with: pytest tests/test_environment.py -v
"""

import threading

import pytest

from src.environment.probability import (
    DoorStatus,
    InMemoryProbabilityStore,
    StoreFailure,
    load_possibility_table,
)
from src.environment.time_buckets import office_time_bucket
from tests.helpers import NOW


class TestOfficeTimeBucket:
    def test_hourly_bucket(self):
        assert office_time_bucket(NOW) == "Tue-22:00"

    def test_finer_bucket(self):
        assert office_time_bucket(NOW, bucket_minutes=10) == "Tue-22:10"

    def test_timezone_shifts_bucket(self):
        assert office_time_bucket(NOW, tz="America/New_York") == "Tue-17:00"

    def test_same_slot_next_week(self):
        assert office_time_bucket(NOW + 7 * 86400) == office_time_bucket(NOW)

    def test_day_boundary(self):
        # Two hours later is past midnight UTC
        assert office_time_bucket(NOW + 2 * 3600) == "Wed-00:00"

    @pytest.mark.parametrize("minutes", [0, -15, 7])
    def test_bucket_must_divide_a_day(self, minutes):
        with pytest.raises(ValueError):
            office_time_bucket(NOW, bucket_minutes=minutes)


class TestInMemoryProbabilityStore:
    def test_unseen_bucket_returns_default(self):
        store = InMemoryProbabilityStore(default_possibility=35.0)
        assert store.read_open_possibility("A", "Mon-09:00") == 35.0
        assert store.last_update("A") is None

    def test_open_fraction(self):
        store = InMemoryProbabilityStore()
        for status in (DoorStatus.OPEN, DoorStatus.OPEN, DoorStatus.CLOSED, DoorStatus.OPEN):
            store.record_observation("A", "Mon-09:00", status, NOW)
        assert store.read_open_possibility("A", "Mon-09:00") == pytest.approx(75.0)
        assert store.observations("A", "Mon-09:00") == (3, 4)

    def test_buckets_are_independent(self):
        store = InMemoryProbabilityStore(default_possibility=50.0)
        store.record_observation("A", "Mon-09:00", DoorStatus.CLOSED, NOW)
        assert store.read_open_possibility("A", "Mon-09:00") == 0.0
        assert store.read_open_possibility("A", "Mon-10:00") == 50.0
        assert store.read_open_possibility("B", "Mon-09:00") == 50.0

    def test_unknown_status_rejected(self):
        store = InMemoryProbabilityStore()
        with pytest.raises(ValueError):
            store.record_observation("A", "Mon-09:00", DoorStatus.UNKNOWN, NOW)
        assert store.observations("A", "Mon-09:00") == (0, 0)

    def test_last_update_is_newest_timestamp(self):
        store = InMemoryProbabilityStore()
        store.record_observation("A", "Mon-09:00", DoorStatus.OPEN, NOW)
        store.record_observation("A", "Mon-10:00", DoorStatus.OPEN, NOW - 500.0)
        assert store.last_update("A") == NOW

    def test_invalid_default_rejected(self):
        with pytest.raises(ValueError):
            InMemoryProbabilityStore(default_possibility=120.0)

    def test_seed_validation(self):
        store = InMemoryProbabilityStore()
        with pytest.raises(ValueError):
            store.seed("A", "Mon-09:00", open_count=5, total=3)

    def test_concurrent_updates_are_counted(self):
        store = InMemoryProbabilityStore()

        def writer():
            for _ in range(200):
                store.record_observation("A", "b", DoorStatus.OPEN, NOW)

        threads = [threading.Thread(target=writer) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.observations("A", "b") == (1000, 1000)


class TestLoadPossibilityTable:
    def test_from_mapping(self):
        store = InMemoryProbabilityStore()
        n = load_possibility_table(store, {"A": {"Mon-09:00": [1, 4]}, "B": {"Mon-09:00": [2, 2]}})
        assert n == 2
        assert store.read_open_possibility("A", "Mon-09:00") == pytest.approx(25.0)
        assert store.read_open_possibility("B", "Mon-09:00") == 100.0

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "possibility.yaml"
        path.write_text("A:\n  Tue-22:00: [3, 4]\n", encoding="utf-8")
        store = InMemoryProbabilityStore()
        assert load_possibility_table(store, path) == 1
        assert store.read_open_possibility("A", "Tue-22:00") == pytest.approx(75.0)

    def test_missing_file_is_store_failure(self, tmp_path):
        with pytest.raises(StoreFailure):
            load_possibility_table(InMemoryProbabilityStore(), tmp_path / "missing.yaml")
