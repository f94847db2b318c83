"""
Simulation KPIs.

After a run, `compute_metrics` folds the per-robot counters and the
allocation service counters into one SimulationMetrics object.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from src.allocation.pool import TaskPool
    from src.allocation.service import AllocationStats
    from src.simulation.robot import Robot


@dataclass
class SimulationMetrics:
    """Final simulation results."""

    total_simulation_time_s: float = 0.0
    total_requests: int = 0
    total_assignments: int = 0
    no_task_responses: int = 0
    observations_recorded: int = 0
    expired_skips: int = 0
    planning_failures: int = 0
    tasks_completed: int = 0
    final_pool_size: int = 0
    total_distance_traveled_m: float = 0.0
    avg_final_battery_pct: float = 0.0
    assignments_by_kind: dict[str, int] = field(default_factory=dict)

    # Per-robot summaries
    robot_summaries: dict[str, dict] = field(default_factory=dict)


def compute_metrics(
    now_s: float,
    robots: list[Robot],
    stats: AllocationStats,
    pool: TaskPool,
) -> SimulationMetrics:
    """Summarise a finished run."""
    metrics = SimulationMetrics(
        total_simulation_time_s=now_s,
        total_requests=stats.requests,
        total_assignments=stats.assignments,
        no_task_responses=stats.no_task_available,
        observations_recorded=stats.observations_recorded,
        expired_skips=stats.expired_skips,
        planning_failures=stats.planning_failures,
        final_pool_size=len(pool),
    )

    batteries = []
    for robot in robots:
        m = robot.metrics
        metrics.tasks_completed += m.tasks_completed
        metrics.total_distance_traveled_m += m.total_distance_m
        for kind, count in m.assignments_by_kind.items():
            metrics.assignments_by_kind[kind] = metrics.assignments_by_kind.get(kind, 0) + count
        batteries.append(robot.battery_pct)

        summary = asdict(m)
        summary["final_battery_pct"] = robot.battery_pct
        metrics.robot_summaries[robot.id] = summary

    metrics.avg_final_battery_pct = float(np.mean(batteries)) if batteries else 0.0
    return metrics
