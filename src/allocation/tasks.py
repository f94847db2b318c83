"""
Task variants, robot request state, and scoring results.

Design decisions:
- Task variants form a closed, tagged set (`kind`) rather than a class
  hierarchy. Each variant is an independent frozen dataclass; the cost
  engine picks a scoring rule per tag.
- Scoring never mutates a pooled task. The computed fields (open
  possibility, battery estimate, last door update) are written onto a
  copy made with `dataclasses.replace` and carried by `ScoredTask`.
- Deadlines and timestamps are epoch seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal, Union

from src.environment.probability import DoorStatus
from src.fleet.geometry import Pose


@dataclass(frozen=True)
class SimpleTask:
    """Visit one room before a deadline.

    Attributes:
        task_id: Unique task identifier.
        room_id: Room to enter.
        pose: Goal pose at the room entrance.
        deadline: Epoch seconds after which the task is expired.
        priority: Larger is more urgent.
        open_possibility: Door open estimate, filled at scoring time.
        battery: Battery estimate for the approach leg, filled at scoring time.
    """

    task_id: str
    room_id: str
    pose: Pose
    deadline: float
    priority: int = 1
    open_possibility: float | None = None
    battery: float | None = None
    kind: Literal["simple"] = field(default="simple", init=False)


@dataclass(frozen=True)
class TaskStop:
    """One stop of a compound task."""

    room_id: str
    pose: Pose
    deadline: float


@dataclass(frozen=True)
class CompoundTask:
    """An ordered sequence of room visits handed out as one assignment.

    The stop order is fixed; waiting time, possibility and priority are
    taken from the first stop.
    """

    task_id: str
    stops: tuple[TaskStop, ...]
    priority: int = 1
    open_possibility: float | None = None
    battery: float | None = None
    kind: Literal["compound"] = field(default="compound", init=False)

    def __post_init__(self) -> None:
        if not self.stops:
            raise ValueError(f"Compound task {self.task_id!r} needs at least one stop")

    @property
    def first_stop(self) -> TaskStop:
        return self.stops[0]


@dataclass(frozen=True)
class ChargingTask:
    """Go charge at a station. Never expires."""

    task_id: str
    station_id: str
    pose: Pose
    remaining_time: float  # seconds until the station is free
    battery: float | None = None
    kind: Literal["charging"] = field(default="charging", init=False)


@dataclass(frozen=True)
class DoorCheckTask:
    """Refresh the observation of a door that has not been seen for a while."""

    task_id: str
    door_id: str
    room_id: str
    pose: Pose
    open_possibility: float | None = None
    last_update: float | None = None
    battery: float | None = None
    kind: Literal["door"] = field(default="door", init=False)


Task = Union[SimpleTask, CompoundTask, ChargingTask, DoorCheckTask]


def goal_pose(task: Task) -> Pose:
    """Where the robot should drive first for this task."""
    if isinstance(task, CompoundTask):
        return task.first_stop.pose
    return task.pose


def target_id(task: Task) -> str:
    """Room id for room-bound tasks, station id for charging tasks."""
    if isinstance(task, ChargingTask):
        return task.station_id
    if isinstance(task, CompoundTask):
        return task.first_stop.room_id
    return task.room_id


# ── Request / response ───────────────────────────────────────────────


@dataclass(frozen=True)
class TaskOutcome:
    """What the robot reports about its previous assignment."""

    completed: bool = False
    door_status: DoorStatus = DoorStatus.UNKNOWN
    room_id: str | None = None
    timestamp: float | None = None

    @property
    def has_observation(self) -> bool:
        return self.completed and self.room_id is not None and self.door_status.observable


@dataclass(frozen=True)
class RobotRequest:
    """Per-request robot state. Never persisted by the allocator."""

    pose: Pose
    battery_level: float
    last_task: TaskOutcome = field(default_factory=TaskOutcome)
    robot_id: str | None = None


@dataclass(frozen=True)
class ScoredTask:
    """A task paired with its cost for one request.

    `cost` is NaN when the task is invalid for this request; `reason` then
    says why ("expired" or "planning_failed").
    """

    task: Task
    cost: float
    reason: str | None = None

    @property
    def valid(self) -> bool:
        return not math.isnan(self.cost)

    @property
    def task_id(self) -> str:
        return self.task.task_id

    @classmethod
    def invalid(cls, task: Task, reason: str) -> ScoredTask:
        return cls(task=task, cost=math.nan, reason=reason)


def selection_key(scored: ScoredTask) -> tuple[float, str]:
    """Sort key whose minimum is the winner: highest cost, then lowest id."""
    return (-scored.cost, scored.task_id)


@dataclass(frozen=True)
class TaskAssignment:
    """Response handed to the robot.

    `completed` is always False for a fresh assignment; the robot flips it
    when reporting back on its next request.
    """

    task_id: str
    kind: str
    goal: Pose
    room_id: str
    cost: float
    waypoints: tuple[Pose, ...] = ()
    completed: bool = False
