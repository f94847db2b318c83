"""
Mobile robot client running as a SimPy process.

Each robot loops: REQUESTING → TRAVELING → INSPECTING → (CHARGING) → REQUESTING.
It asks the allocation service for its next task, drives the planned
route at a fixed speed, looks at the door of the target room, and reports
that observation with its next request. A robot whose battery drops below
the threshold drives to the nearest charging station on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np
import simpy

from src.allocation.errors import NoTaskAvailable
from src.allocation.tasks import RobotRequest, TaskOutcome
from src.environment.probability import DoorStatus
from src.planning.oracle import PlanningFailure, route_length

if TYPE_CHECKING:
    from src.allocation.service import AllocationService
    from src.allocation.tasks import TaskAssignment
    from src.fleet.config import SimulationConfig
    from src.fleet.geometry import Pose
    from src.fleet.registry import PoseRegistry
    from src.planning.oracle import PathOracle


class RobotState(Enum):
    """Valid robot states"""

    REQUESTING = auto()
    WAITING = auto()  # no task was available
    TRAVELING = auto()
    INSPECTING = auto()
    CHARGING = auto()


class DoorModel:
    """Ground truth for door states: each room has a fixed open probability."""

    def __init__(self, room_ids: list[str], rng: np.random.Generator) -> None:
        self.rng = rng
        self.open_probability = {r: float(rng.uniform(0.1, 0.9)) for r in room_ids}

    def observe(self, room_id: str) -> DoorStatus:
        p = self.open_probability.get(room_id)
        if p is None:
            return DoorStatus.UNKNOWN
        return DoorStatus.OPEN if self.rng.random() < p else DoorStatus.CLOSED


@dataclass
class RobotMetrics:
    """Running counters for a single robot."""

    total_distance_m: float = 0.0
    tasks_completed: int = 0
    no_task_responses: int = 0
    route_failures: int = 0
    charging_visits: int = 0
    assignments_by_kind: dict[str, int] = field(default_factory=dict)


class Robot:
    """A fleet robot that pulls work from the allocation service.

    Attributes:
        id: Unique identifier (e.g., "ROBOT_01").
        pose: Current pose.
        state: Current lifecycle state.
        battery_pct: Current battery level (0–100).
        last_outcome: Outcome reported with the next request.
        metrics: Running performance counters.
    """

    def __init__(
        self,
        robot_id: str,
        start_pose: Pose,
        env: simpy.Environment,
        config: SimulationConfig,
        service: AllocationService,
        oracle: PathOracle,
        stations: PoseRegistry,
        doors: DoorModel,
        tolerance: float = 1.0,
    ) -> None:
        self.id = robot_id
        self.pose = start_pose
        self.env = env
        self.config = config
        self.service = service
        self.oracle = oracle
        self.stations = stations
        self.doors = doors
        self.tolerance = tolerance

        self.state = RobotState.REQUESTING
        self.battery_pct = 100.0
        self.last_outcome = TaskOutcome()
        self.metrics = RobotMetrics()

    def _drive(self, goal: Pose):
        """SimPy generator: follow the planned route to goal. Returns False if unplannable."""
        try:
            route = self.oracle.plan(self.pose, goal, self.tolerance)
        except PlanningFailure:
            self.metrics.route_failures += 1
            return False
        if not route:
            self.metrics.route_failures += 1
            return False

        distance = route_length(route)
        self.state = RobotState.TRAVELING
        yield self.env.timeout(distance / self.config.speed_mps)
        self.pose = route[-1]
        self.metrics.total_distance_m += distance
        self.battery_pct = max(0.0, self.battery_pct - distance * self.config.battery_drain_per_meter)
        return True

    def _charge(self):
        """Drive to the nearest station and charge to full."""
        station_id = min(self.stations, key=lambda s: self.stations[s].distance_to(self.pose))
        reached = yield from self._drive(self.stations[station_id])
        if not reached:
            return
        self.state = RobotState.CHARGING
        deficit = 100.0 - self.battery_pct
        yield self.env.timeout(deficit / self.config.charge_rate_pct_per_s)
        self.battery_pct = 100.0
        self.metrics.charging_visits += 1

    def _execute(self, assignment: TaskAssignment):
        """Carry out one assignment and remember its outcome."""
        for goal in (assignment.goal, *assignment.waypoints):
            reached = yield from self._drive(goal)
            if not reached:
                self.last_outcome = TaskOutcome(completed=False, room_id=assignment.room_id)
                yield self.env.timeout(self.config.retry_interval_s)
                return

        if assignment.kind == "charging":
            self.state = RobotState.CHARGING
            yield self.env.timeout((100.0 - self.battery_pct) / self.config.charge_rate_pct_per_s)
            self.battery_pct = 100.0
            self.metrics.charging_visits += 1
            status = DoorStatus.UNKNOWN
        else:
            self.state = RobotState.INSPECTING
            yield self.env.timeout(self.config.inspection_time_s)
            status = self.doors.observe(assignment.room_id)

        self.metrics.tasks_completed += 1
        self.last_outcome = TaskOutcome(
            completed=True,
            door_status=status,
            room_id=assignment.room_id,
            timestamp=self.service.clock(),
        )

    def run(self):
        """Main SimPy process loop. Runs for the lifetime of the simulation."""

        while True:
            self.state = RobotState.REQUESTING
            request = RobotRequest(
                pose=self.pose,
                battery_level=self.battery_pct,
                last_task=self.last_outcome,
                robot_id=self.id,
            )
            try:
                assignment = self.service.handle_request(request)
            except NoTaskAvailable:
                # The outcome was delivered with this request; do not report it twice
                self.last_outcome = TaskOutcome()
                self.metrics.no_task_responses += 1
                self.state = RobotState.WAITING
                yield self.env.timeout(self.config.retry_interval_s)
                continue

            self.last_outcome = TaskOutcome()
            kind_counts = self.metrics.assignments_by_kind
            kind_counts[assignment.kind] = kind_counts.get(assignment.kind, 0) + 1
            yield from self._execute(assignment)

            if self.battery_pct < self.config.battery_threshold:
                yield from self._charge()
