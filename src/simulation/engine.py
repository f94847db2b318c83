"""
Fleet simulation engine: the top-level orchestrator.

Wires the allocator (built exactly as the service process builds it) to a
SimPy fleet of robots so the whole request → score → select → remove →
observe loop can be exercised without hardware.

Usage:
    config = load_config("config/default_allocator.yaml")
    engine = FleetSimulation(config)
    results = engine.run()
    print(f"Assignments: {results.total_assignments}")

Simulation time t maps to wall-clock `simulation.start_epoch_s + t`, which
is what the allocator sees for deadlines and time buckets.
"""

from __future__ import annotations

import logging

import numpy as np
import simpy

from src.allocation.bootstrap import AllocatorRuntime, build_allocation_service
from src.fleet.config import AllocatorConfig
from src.simulation.metrics import SimulationMetrics, compute_metrics
from src.simulation.robot import DoorModel, Robot

logger = logging.getLogger(__name__)


class FleetSimulation:
    """Top-level simulation orchestrator.

    Args:
        config: Full allocator configuration (the `simulation` section drives the run).
        n_robots: Number of robots; defaults to `simulation.n_robots`.
    """

    def __init__(self, config: AllocatorConfig, n_robots: int | None = None) -> None:
        self.config = config
        self.n_robots = n_robots if n_robots is not None else config.simulation.n_robots

        self.runtime: AllocatorRuntime | None = None
        self.robots: list[Robot] = []
        self.metrics: SimulationMetrics | None = None

    def run(self) -> SimulationMetrics:
        """Execute the full simulation and return results."""
        sim = self.config.simulation
        env = simpy.Environment()
        rng = np.random.default_rng(sim.random_seed)

        # ── Build allocator on simulated wall-clock time ─────────────
        self.runtime = build_allocation_service(
            self.config,
            clock=lambda: sim.start_epoch_s + env.now,
        )
        runtime = self.runtime
        doors = DoorModel(list(runtime.rooms), rng)

        # ── Create robot fleet, starting at the charging stations ────
        station_ids = list(runtime.stations)
        self.robots = []
        for i in range(self.n_robots):
            robot = Robot(
                robot_id=f"ROBOT_{i:02d}",
                start_pose=runtime.stations[station_ids[i % len(station_ids)]],
                env=env,
                config=sim,
                service=runtime.service,
                oracle=runtime.oracle,
                stations=runtime.stations,
                doors=doors,
                tolerance=self.config.planner.tolerance,
            )
            self.robots.append(robot)
            env.process(robot.run())

        env.process(self._refill_process(env))

        logger.info(
            "Starting simulation: %d robots, %d rooms, %.1f hours",
            self.n_robots,
            len(runtime.rooms),
            sim.duration_hours,
        )
        env.run(until=sim.duration_s)
        runtime.service.shutdown()

        self.metrics = compute_metrics(env.now, self.robots, runtime.service.stats_snapshot(), runtime.pool)
        logger.info(
            "Simulation complete: %d assignments, %d no-task responses, %d tasks left",
            self.metrics.total_assignments,
            self.metrics.no_task_responses,
            self.metrics.final_pool_size,
        )
        return self.metrics

    def _refill_process(self, env: simpy.Environment):
        """SimPy process: periodically top up the pool with generated tasks."""
        sim = self.config.simulation
        runtime = self.runtime
        while True:
            yield env.timeout(sim.refill_interval_s)
            new_tasks = runtime.generator.generate(sim.refill_batch, runtime.service.clock())
            runtime.pool.extend(new_tasks)
            logger.debug("Refilled pool with %d tasks (size %d)", len(new_tasks), len(runtime.pool))
