"""
Weighted cost model for scoring pooled tasks against a requesting robot.

One scoring rule per task variant, all sharing a battery-consumption
estimate derived from a single path-oracle round trip:

  simple    distance + wt_wait·slack + wt_pri·priority
                     − wt_psb·possibility − wt_btr·battery_level
  compound  wt_btr/N·battery + wt_wait·slack + wt_psb·possibility + wt_pri·priority
            (legs in stop order; slack, possibility, priority from stop 1)
  charging  wt_remain·remaining_time + wt_btr·battery
  door      wt_btr·battery + wt_psb·possibility + wt_update·staleness

The allocator hands out the MAXIMUM combined scalar. For the simple rule
this means longer trips, more slack and lower possibility win, which is
the opposite of a minimise-cost reading of the same formula. The formula
and the selection direction are kept exactly as tuned on the fleet;
flipping either is a product decision.

Scoring is pure apart from the oracle and store reads: the pooled task is
never touched, computed fields go onto a copy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable

import numpy as np

from src.allocation.tasks import (
    ChargingTask,
    CompoundTask,
    DoorCheckTask,
    RobotRequest,
    ScoredTask,
    SimpleTask,
    Task,
)
from src.environment.probability import StoreFailure
from src.environment.time_buckets import office_time_bucket
from src.fleet.config import BatteryModel, ChargingWeights, DoorWeights, TaskWeights
from src.planning.oracle import PlanningFailure

if TYPE_CHECKING:
    from src.environment.probability import ProbabilityStore
    from src.fleet.geometry import Pose
    from src.planning.oracle import PathOracle

logger = logging.getLogger(__name__)

NEUTRAL_POSSIBILITY = 0.0  # used when the store cannot be read


@dataclass(frozen=True)
class BatteryEstimate:
    """Route length and battery cost for one start → goal leg."""

    distance: float
    battery: float


class CostEngine:
    """Scores tasks for one robot request.

    Args:
        oracle: Path planner used for every battery estimate.
        store: Door open-probability store.
        task_weights: Weights for simple and compound tasks.
        door_weights: Weights for door-check tasks.
        charging_weights: Weights for charging tasks.
        battery_model: Linear/angular battery coefficients.
        tolerance: Goal tolerance passed to the oracle.
        bucket_fn: Maps an epoch timestamp to a probability time bucket.
    """

    def __init__(
        self,
        oracle: PathOracle,
        store: ProbabilityStore,
        task_weights: TaskWeights | None = None,
        door_weights: DoorWeights | None = None,
        charging_weights: ChargingWeights | None = None,
        battery_model: BatteryModel | None = None,
        tolerance: float = 1.0,
        bucket_fn: Callable[[float], str] = office_time_bucket,
    ) -> None:
        self.oracle = oracle
        self.store = store
        self.task_weights = task_weights or TaskWeights()
        self.door_weights = door_weights or DoorWeights()
        self.charging_weights = charging_weights or ChargingWeights()
        self.battery_model = battery_model or BatteryModel()
        self.tolerance = tolerance
        self.bucket_fn = bucket_fn

        self._scorers: dict[str, Callable[[Task, RobotRequest, float], ScoredTask]] = {
            "simple": self.simple_cost,
            "compound": self.compound_cost,
            "charging": self.charging_cost,
            "door": self.door_cost,
        }

        logger.info(
            "Task weights btr=%.2f wait=%.2f psb=%.2f pri=%.2f",
            self.task_weights.wt_btr,
            self.task_weights.wt_wait,
            self.task_weights.wt_psb,
            self.task_weights.wt_pri,
        )
        logger.info(
            "Door weights btr=%.2f update=%.2f psb=%.2f",
            self.door_weights.wt_btr,
            self.door_weights.wt_update,
            self.door_weights.wt_psb,
        )

    # ── Shared primitives ───────────────────────────────────────────

    def estimate(self, start: Pose, end: Pose) -> BatteryEstimate:
        """Distance and battery consumption along the planned route.

        Raises:
            PlanningFailure: If the oracle fails or returns an empty route.
        """
        try:
            route = self.oracle.plan(start, end, self.tolerance)
        except PlanningFailure:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise PlanningFailure(f"Path oracle error: {exc}") from exc

        if not route:
            raise PlanningFailure(
                f"Empty plan from ({start.x:.3f}, {start.y:.3f}) to ({end.x:.3f}, {end.y:.3f})"
            )

        pts = np.array([(p.x, p.y, p.yaw) for p in route], dtype=np.float64)
        seg = np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))
        dyaw = np.diff(pts[:, 2])
        dyaw = np.abs(np.arctan2(np.sin(dyaw), np.cos(dyaw)))
        battery = float(
            np.sum(self.battery_model.linear_weight * seg + self.battery_model.angular_weight * dyaw)
        )
        return BatteryEstimate(distance=float(seg.sum()), battery=battery)

    def possibility(self, room_id: str, now: float) -> float:
        """Open possibility for the room in the bucket of `now`; neutral on store failure."""
        bucket = self.bucket_fn(now)
        try:
            value = float(self.store.read_open_possibility(room_id, bucket))
        except StoreFailure as exc:
            logger.warning("Possibility read failed for room %s (%s): %s", room_id, bucket, exc)
            return NEUTRAL_POSSIBILITY
        return min(100.0, max(0.0, value))

    def score(self, task: Task, robot: RobotRequest, now: float) -> ScoredTask:
        """Dispatch to the scoring rule for the task's variant."""
        try:
            scorer = self._scorers[task.kind]
        except KeyError:
            raise TypeError(f"No scoring rule for task kind {task.kind!r}") from None
        return scorer(task, robot, now)

    # ── Scoring rules ───────────────────────────────────────────────

    def simple_cost(self, task: SimpleTask, robot: RobotRequest, now: float) -> ScoredTask:
        slack = task.deadline - now
        if slack < 0:
            logger.info("Task %s is expired", task.task_id)
            return ScoredTask.invalid(task, "expired")

        psb = self.possibility(task.room_id, now)
        try:
            est = self.estimate(robot.pose, task.pose)
        except PlanningFailure as exc:
            logger.info("Task %s not plannable: %s", task.task_id, exc)
            return ScoredTask.invalid(task, "planning_failed")

        w = self.task_weights
        cost = (
            est.distance
            + w.wt_wait * slack
            + w.wt_pri * task.priority
            - w.wt_psb * psb
            - w.wt_btr * robot.battery_level
        )
        logger.debug(
            "task %s room %s distance %.3f slack %.1f psb %.1f priority %d battery %.1f cost %.3f",
            task.task_id,
            task.room_id,
            est.distance,
            slack,
            psb,
            task.priority,
            robot.battery_level,
            cost,
        )
        return ScoredTask(replace(task, open_possibility=psb, battery=est.battery), cost)

    def compound_cost(self, task: CompoundTask, robot: RobotRequest, now: float) -> ScoredTask:
        first = task.first_stop
        slack = first.deadline - now
        if slack < 0:
            logger.info("Compound task %s is expired", task.task_id)
            return ScoredTask.invalid(task, "expired")

        psb = self.possibility(first.room_id, now)
        battery = 0.0
        start = robot.pose
        try:
            for stop in task.stops:
                battery += self.estimate(start, stop.pose).battery
                start = stop.pose
        except PlanningFailure as exc:
            logger.info("Compound task %s not plannable: %s", task.task_id, exc)
            return ScoredTask.invalid(task, "planning_failed")

        w = self.task_weights
        cost = (
            w.wt_btr / len(task.stops) * battery
            + w.wt_wait * slack
            + w.wt_psb * psb
            + w.wt_pri * task.priority
        )
        logger.debug(
            "compound %s stops %d battery %.3f slack %.1f psb %.1f priority %d cost %.3f",
            task.task_id,
            len(task.stops),
            battery,
            slack,
            psb,
            task.priority,
            cost,
        )
        return ScoredTask(replace(task, open_possibility=psb, battery=battery), cost)

    def charging_cost(self, task: ChargingTask, robot: RobotRequest, now: float) -> ScoredTask:
        try:
            est = self.estimate(robot.pose, task.pose)
        except PlanningFailure as exc:
            logger.info("Station %s not plannable: %s", task.station_id, exc)
            return ScoredTask.invalid(task, "planning_failed")

        w = self.charging_weights
        cost = w.wt_remain * task.remaining_time + w.wt_btr * est.battery
        logger.debug(
            "station %s remaining %.1f battery %.3f cost %.3f",
            task.station_id,
            task.remaining_time,
            est.battery,
            cost,
        )
        return ScoredTask(replace(task, battery=est.battery), cost)

    def door_cost(self, task: DoorCheckTask, robot: RobotRequest, now: float) -> ScoredTask:
        try:
            est = self.estimate(robot.pose, task.pose)
        except PlanningFailure as exc:
            logger.info("Door %s not plannable: %s", task.door_id, exc)
            return ScoredTask.invalid(task, "planning_failed")

        psb = self.possibility(task.room_id, now)
        last_update = self._last_update(task)
        w = self.door_weights
        if last_update is None:
            staleness = w.max_staleness_s
        else:
            staleness = min(w.max_staleness_s, max(0.0, now - last_update))

        cost = w.wt_btr * est.battery + w.wt_psb * psb + w.wt_update * staleness
        logger.debug(
            "door %s battery %.3f staleness %.1f psb %.1f cost %.3f",
            task.door_id,
            est.battery,
            staleness,
            psb,
            cost,
        )
        scored = replace(task, open_possibility=psb, last_update=last_update, battery=est.battery)
        return ScoredTask(scored, cost)

    def _last_update(self, task: DoorCheckTask) -> float | None:
        try:
            stored = self.store.last_update(task.room_id)
        except StoreFailure as exc:
            logger.warning("Last-update read failed for room %s: %s", task.room_id, exc)
            stored = None
        if stored is None:
            return task.last_update
        if task.last_update is None:
            return stored
        return max(stored, task.last_update)

