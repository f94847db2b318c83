"""
Random task generation for seeding and refilling the pool.

Room-visit tasks draw a random room, a deadline uniformly inside the
configured window, and a uniform integer priority. A configurable share
of draws becomes a compound (multi-room) task or a charging task instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from src.allocation.tasks import ChargingTask, CompoundTask, DoorCheckTask, SimpleTask, Task, TaskStop

if TYPE_CHECKING:
    from src.fleet.config import GeneratorConfig
    from src.fleet.registry import PoseRegistry


class TaskGenerator:
    """Produces uniquely numbered tasks from the room and station registries.

    Args:
        config: Generation parameters.
        rooms: Room positions.
        stations: Charging station positions.
        rng: Random generator; seeded from the config when omitted.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        rooms: PoseRegistry,
        stations: PoseRegistry,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config
        self.rooms = rooms
        self.stations = stations
        self.rng = rng or np.random.default_rng(config.random_seed)

        self._counter = 0
        self._room_ids = list(rooms)
        self._station_ids = list(stations)

    def _next_id(self) -> str:
        self._counter += 1
        return f"TSK_{self._counter:05d}"

    def _deadline(self, now: float) -> float:
        return now + float(self.rng.uniform(self.config.deadline_min_s, self.config.deadline_max_s))

    def _priority(self) -> int:
        return int(self.rng.integers(self.config.priority_min, self.config.priority_max + 1))

    def simple_task(self, now: float) -> SimpleTask:
        room_id = str(self.rng.choice(self._room_ids))
        return SimpleTask(
            task_id=self._next_id(),
            room_id=room_id,
            pose=self.rooms[room_id],
            deadline=self._deadline(now),
            priority=self._priority(),
        )

    def compound_task(self, now: float) -> CompoundTask:
        n_stops = int(self.rng.integers(2, max(2, self.config.compound_max_stops) + 1))
        n_stops = min(n_stops, len(self._room_ids))
        room_ids = self.rng.choice(self._room_ids, size=n_stops, replace=False)

        # Later stops get later deadlines so the sequence stays feasible
        first_deadline = self._deadline(now)
        stops = tuple(
            TaskStop(
                room_id=str(room_id),
                pose=self.rooms[str(room_id)],
                deadline=first_deadline + i * self.config.deadline_min_s,
            )
            for i, room_id in enumerate(room_ids)
        )
        return CompoundTask(task_id=self._next_id(), stops=stops, priority=self._priority())

    def charging_task(self) -> ChargingTask:
        station_id = str(self.rng.choice(self._station_ids))
        return ChargingTask(
            task_id=self._next_id(),
            station_id=station_id,
            pose=self.stations[station_id],
            remaining_time=float(self.rng.uniform(0.0, self.config.remaining_time_max_s)),
        )

    def door_check_tasks(self, doors: dict[str, str]) -> list[DoorCheckTask]:
        """One check task per configured door, in door id order."""
        return [
            DoorCheckTask(
                task_id=self._next_id(),
                door_id=door_id,
                room_id=room_id,
                pose=self.rooms[room_id],
            )
            for door_id, room_id in sorted(doors.items())
        ]

    def generate(self, n_tasks: int, now: float) -> list[Task]:
        """Draw `n_tasks` tasks, mixing variants by the configured fractions."""
        tasks: list[Task] = []
        for _ in range(n_tasks):
            u = self.rng.random()
            if self._station_ids and u < self.config.charging_fraction:
                tasks.append(self.charging_task())
            elif (
                len(self._room_ids) >= 2
                and u < self.config.charging_fraction + self.config.compound_fraction
            ):
                tasks.append(self.compound_task(now))
            else:
                tasks.append(self.simple_task(now))
        return tasks
