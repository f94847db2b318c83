"""
Door open-probability model.

Observations are counted per (room, time bucket). The open possibility
for a bucket is the observed open fraction scaled to [0, 100]; buckets
that were never observed answer with a configured default.

The allocator only depends on the `ProbabilityStore` protocol, so a
database-backed store can replace `InMemoryProbabilityStore` without
touching the cost engine.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Protocol

import yaml


class StoreFailure(RuntimeError):
    """The probability store could not be read or written."""


class DoorStatus(Enum):
    """Door state reported by a robot after visiting a room."""

    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"

    @property
    def observable(self) -> bool:
        return self is not DoorStatus.UNKNOWN


class ProbabilityStore(Protocol):
    """Protocol for reading and updating door open possibilities."""

    def read_open_possibility(self, room_id: str, bucket: str) -> float:
        """Open possibility in [0, 100] for a room during a time bucket."""

    def record_observation(
        self, room_id: str, bucket: str, status: DoorStatus, timestamp: float
    ) -> None:
        """Fold one observed door status into the model."""

    def last_update(self, room_id: str) -> float | None:
        """Timestamp of the most recent observation for a room, if any."""


@dataclass
class BucketStats:
    """Observation counters for one (room, bucket) cell."""

    open_count: int = 0
    total: int = 0

    @property
    def possibility(self) -> float:
        return 100.0 * self.open_count / self.total


class InMemoryProbabilityStore:
    """Thread-safe counting store.

    Attributes:
        default_possibility: Returned for buckets with no observations.
    """

    def __init__(self, default_possibility: float = 50.0) -> None:
        if not 0.0 <= default_possibility <= 100.0:
            raise ValueError(f"default_possibility must be in [0, 100], got {default_possibility}")
        self.default_possibility = default_possibility
        self._cells: dict[tuple[str, str], BucketStats] = {}
        self._last_update: dict[str, float] = {}
        self._lock = threading.Lock()

    def read_open_possibility(self, room_id: str, bucket: str) -> float:
        with self._lock:
            stats = self._cells.get((room_id, bucket))
            if stats is None or stats.total == 0:
                return self.default_possibility
            return stats.possibility

    def record_observation(
        self, room_id: str, bucket: str, status: DoorStatus, timestamp: float
    ) -> None:
        if not status.observable:
            raise ValueError(f"Cannot record an unobservable door status for room {room_id!r}")
        with self._lock:
            stats = self._cells.setdefault((room_id, bucket), BucketStats())
            stats.total += 1
            if status is DoorStatus.OPEN:
                stats.open_count += 1
            previous = self._last_update.get(room_id)
            if previous is None or timestamp > previous:
                self._last_update[room_id] = timestamp

    def last_update(self, room_id: str) -> float | None:
        with self._lock:
            return self._last_update.get(room_id)

    def seed(self, room_id: str, bucket: str, open_count: int, total: int) -> None:
        """Preload historical counts for a cell."""
        if total < 0 or not 0 <= open_count <= total:
            raise ValueError(f"Invalid counts for {room_id}/{bucket}: {open_count}/{total}")
        with self._lock:
            self._cells[(room_id, bucket)] = BucketStats(open_count, total)

    def observations(self, room_id: str, bucket: str) -> tuple[int, int]:
        """(open_count, total) for a cell."""
        with self._lock:
            stats = self._cells.get((room_id, bucket), BucketStats())
            return stats.open_count, stats.total


def load_possibility_table(
    store: InMemoryProbabilityStore,
    source: str | Path | Mapping[str, Mapping[str, list[int]]],
) -> int:
    """Seed a store from `{room: {bucket: [open_count, total]}}`.

    Args:
        store: Store to seed.
        source: A YAML file path or an already-parsed mapping.

    Returns:
        Number of cells loaded.

    Raises:
        StoreFailure: The file cannot be read or a cell is malformed.
    """
    if isinstance(source, (str, Path)):
        try:
            with open(source, encoding="utf-8") as f:
                table = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise StoreFailure(f"Cannot read possibility table {source}: {exc}") from exc
    else:
        table = source

    n_cells = 0
    try:
        for room_id, buckets in table.items():
            for bucket, (open_count, total) in buckets.items():
                store.seed(str(room_id), str(bucket), int(open_count), int(total))
                n_cells += 1
    except (AttributeError, TypeError, ValueError) as exc:
        raise StoreFailure(f"Malformed possibility table: {exc}") from exc
    return n_cells
