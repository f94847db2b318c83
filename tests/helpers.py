"""Fakes and builders shared by the allocator tests."""

from src.allocation.tasks import RobotRequest, SimpleTask
from src.environment.probability import DoorStatus, StoreFailure
from src.fleet.geometry import Pose, heading
from src.planning.oracle import PlanningFailure

# Tue 2023-11-14 22:13:20 UTC
NOW = 1_700_000_000.0


class FakeOracle:
    """Straight-line planner; goals listed in `unreachable` fail."""

    def __init__(self, unreachable=(), empty=()):
        self.unreachable = set(unreachable)
        self.empty = set(empty)
        self.calls = []

    def plan(self, start, goal, tolerance):
        self.calls.append((start, goal, tolerance))
        key = (goal.x, goal.y)
        if key in self.unreachable:
            raise PlanningFailure(f"no route to {key}")
        if key in self.empty:
            return []
        return [start, Pose(goal.x, goal.y, heading(start, goal))]


class FakeStore:
    """Fixed possibility per room; records observations in a list."""

    def __init__(self, possibilities=None, fail_reads=False, fail_writes=False):
        self.possibilities = dict(possibilities or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.observations = []
        self.updates = {}

    def read_open_possibility(self, room_id, bucket):
        if self.fail_reads:
            raise StoreFailure("store offline")
        return self.possibilities.get(room_id, 0.0)

    def record_observation(self, room_id, bucket, status, timestamp):
        if self.fail_writes:
            raise StoreFailure("store offline")
        self.observations.append((room_id, bucket, status, timestamp))
        self.possibilities[room_id] = 100.0 if status is DoorStatus.OPEN else 0.0
        self.updates[room_id] = timestamp

    def last_update(self, room_id):
        if self.fail_reads:
            raise StoreFailure("store offline")
        return self.updates.get(room_id)


def make_simple(task_id, x, y, room_id=None, deadline=NOW + 100.0, priority=1):
    """Helper to create a SimpleTask with minimal boilerplate."""
    return SimpleTask(
        task_id=task_id,
        room_id=room_id or f"R_{task_id}",
        pose=Pose(x, y),
        deadline=deadline,
        priority=priority,
    )


def make_request(x=0.0, y=0.0, battery=0.0, **kwargs):
    return RobotRequest(pose=Pose(x, y), battery_level=battery, **kwargs)
