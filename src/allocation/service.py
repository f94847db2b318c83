"""
Allocation request handler.

Each robot request runs IDLE → SCORING → SELECTING → RESPONDING → IDLE:

  1. Fold the robot's last observed door status into the probability
     store (best effort, before scoring so this request already sees it).
  2. Snapshot the pool and score every task. Scoring holds no lock and may
     run on a thread pool; each task costs one path-oracle round trip.
  3. No valid score → NoTaskAvailable, pool untouched.
  4. Winner = highest cost, ties broken by lowest task id.
  5. Remove the winner from the pool and answer with its goal.

The pool lock is taken only for the snapshot and for the final removal,
and the removal re-validates membership, so concurrent requests never
receive the same task and an abandoned request leaves the pool intact.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable

from src.allocation.errors import EmptyPoolError, NoEligibleTaskError
from src.allocation.tasks import (
    CompoundTask,
    RobotRequest,
    ScoredTask,
    Task,
    TaskAssignment,
    goal_pose,
    selection_key,
    target_id,
)
from src.environment.probability import StoreFailure
from src.environment.time_buckets import office_time_bucket

if TYPE_CHECKING:
    from src.allocation.cost import CostEngine
    from src.allocation.pool import TaskPool
    from src.environment.probability import ProbabilityStore

logger = logging.getLogger(__name__)


class AllocationState(Enum):
    """Request-handling phase, exposed for diagnostics."""

    IDLE = auto()
    SCORING = auto()
    SELECTING = auto()
    RESPONDING = auto()


@dataclass
class AllocationStats:
    """Running counters across requests."""

    requests: int = 0
    assignments: int = 0
    no_task_available: int = 0
    observations_recorded: int = 0
    observation_failures: int = 0
    expired_skips: int = 0
    planning_failures: int = 0


class AllocationService:
    """Hands out the best pooled task to a requesting robot.

    Args:
        pool: Pending tasks; the only state shared across requests.
        engine: Cost engine used to score each task.
        store: Probability store receiving door observations.
        bucket_fn: Maps an epoch timestamp to a probability time bucket.
        scoring_workers: >1 scores candidates concurrently on a thread pool.
        clock: Wall-clock source, epoch seconds.
    """

    def __init__(
        self,
        pool: TaskPool,
        engine: CostEngine,
        store: ProbabilityStore,
        bucket_fn: Callable[[float], str] = office_time_bucket,
        scoring_workers: int = 1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.pool = pool
        self.engine = engine
        self.store = store
        self.bucket_fn = bucket_fn
        self.clock = clock
        self.stats = AllocationStats()
        self._stats_lock = threading.Lock()
        self._executor = (
            ThreadPoolExecutor(max_workers=scoring_workers, thread_name_prefix="scoring")
            if scoring_workers > 1
            else None
        )
        self._local = threading.local()

    @property
    def state(self) -> AllocationState:
        """Phase of the request being handled on the calling thread."""
        return getattr(self._local, "state", AllocationState.IDLE)

    def _set_state(self, new_state: AllocationState) -> None:
        self._local.state = new_state

    # ── Public interface ────────────────────────────────────────────

    def handle_request(self, request: RobotRequest, now: float | None = None) -> TaskAssignment:
        """Assign the best task to the requesting robot.

        Args:
            request: Robot pose, battery level and last-task outcome.
            now: Request time in epoch seconds; defaults to the service clock.

        Returns:
            The assignment for the winning task, which has left the pool.

        Raises:
            EmptyPoolError: The pool is empty.
            NoEligibleTaskError: Every pooled task is expired or unplannable.
        """
        now = self.clock() if now is None else now
        self._count("requests")
        logger.info(
            "Request from robot %s battery %.1f pose (%.2f, %.2f, %.2f) last task %s",
            request.robot_id or "?",
            request.battery_level,
            request.pose.x,
            request.pose.y,
            request.pose.yaw,
            request.last_task,
        )

        try:
            self._record_outcome(request, now)

            self._set_state(AllocationState.SCORING)
            tasks = self.pool.snapshot()
            logger.info("There are %d tasks", len(tasks))
            if not tasks:
                self._count("no_task_available")
                raise EmptyPoolError("No available tasks in the pool")
            scored = self.score_all(tasks, request, now)

            self._set_state(AllocationState.SELECTING)
            try:
                task = self.pool.remove_best(scored, key=selection_key)
            except (EmptyPoolError, NoEligibleTaskError):
                self._count("no_task_available")
                logger.info("No eligible task for robot %s", request.robot_id or "?")
                raise

            self._set_state(AllocationState.RESPONDING)
            winner = next(s for s in scored if s.task_id == task.task_id)
            assignment = _build_assignment(task, winner)
            self._count("assignments")
            logger.info(
                "Give robot %s task %s (%s) room %s cost %.3f; %d tasks left",
                request.robot_id or "?",
                assignment.task_id,
                assignment.kind,
                assignment.room_id,
                assignment.cost,
                len(self.pool),
            )
            return assignment
        finally:
            self._set_state(AllocationState.IDLE)

    def score_all(self, tasks: tuple[Task, ...], request: RobotRequest, now: float) -> list[ScoredTask]:
        """Score every task; invalid entries are kept with a NaN cost."""
        if self._executor is not None:
            scored = list(self._executor.map(lambda t: self.engine.score(t, request, now), tasks))
        else:
            scored = [self.engine.score(t, request, now) for t in tasks]

        reasons = [entry.reason for entry in scored]
        self._count("expired_skips", reasons.count("expired"))
        self._count("planning_failures", reasons.count("planning_failed"))
        return scored

    def stats_snapshot(self) -> AllocationStats:
        """Consistent copy of the counters."""
        with self._stats_lock:
            return replace(self.stats)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    # ── Internals ───────────────────────────────────────────────────

    def _count(self, name: str, n: int = 1) -> None:
        if n:
            with self._stats_lock:
                setattr(self.stats, name, getattr(self.stats, name) + n)

    def _record_outcome(self, request: RobotRequest, now: float) -> None:
        """Push the last door observation to the store. Never raises StoreFailure."""
        outcome = request.last_task
        if not outcome.has_observation:
            return

        observed_at = now if outcome.timestamp is None else outcome.timestamp
        bucket = self.bucket_fn(now)
        try:
            self.store.record_observation(outcome.room_id, bucket, outcome.door_status, observed_at)
        except StoreFailure as exc:
            self._count("observation_failures")
            logger.warning("Possibility update failed for room %s: %s", outcome.room_id, exc)
            return
        self._count("observations_recorded")
        logger.info(
            "Update possibility table room %s bucket %s status %s",
            outcome.room_id,
            bucket,
            outcome.door_status.value,
        )


def _build_assignment(task: Task, winner: ScoredTask) -> TaskAssignment:
    waypoints: tuple = ()
    if isinstance(task, CompoundTask):
        waypoints = tuple(stop.pose for stop in task.stops[1:])
    return TaskAssignment(
        task_id=task.task_id,
        kind=task.kind,
        goal=goal_pose(task),
        room_id=target_id(task),
        cost=winner.cost,
        waypoints=waypoints,
        completed=False,
    )
