"""
Tests for the SimPy fleet simulation.

Tests cover:
1. Door ground-truth model
2. A single robot pulling, executing and reporting tasks
3. End-to-end run: pool conservation, determinism, observations

Run with: pytest tests/test_simulation.py -v
"""

import dataclasses
from pathlib import Path

import numpy as np
import pytest
import simpy

from src.allocation.bootstrap import build_allocation_service
from src.allocation.tasks import ChargingTask
from src.environment.probability import DoorStatus
from src.fleet.config import ServiceConfig, SimulationConfig, load_config
from src.fleet.geometry import Pose
from src.simulation.engine import FleetSimulation
from src.simulation.robot import DoorModel, Robot, RobotState
from tests.helpers import make_simple

DEFAULT_CONFIG = Path(__file__).resolve().parents[1] / "config" / "default_allocator.yaml"


@pytest.fixture
def config():
    config = load_config(DEFAULT_CONFIG)
    sim = dataclasses.replace(config.simulation, duration_hours=0.2, n_robots=2)
    return dataclasses.replace(config, simulation=sim, service=ServiceConfig(scoring_workers=1))


class TestDoorModel:
    def test_unknown_room(self):
        doors = DoorModel(["A"], np.random.default_rng(0))
        assert doors.observe("Z") is DoorStatus.UNKNOWN

    def test_probabilities_in_range(self):
        doors = DoorModel(list("ABCDEFGH"), np.random.default_rng(0))
        assert all(0.1 <= p <= 0.9 for p in doors.open_probability.values())
        assert doors.observe("A") in (DoorStatus.OPEN, DoorStatus.CLOSED)


class TestRobot:
    def make_robot(self, config, runtime, env, start=None):
        return Robot(
            robot_id="ROBOT_00",
            start_pose=start or runtime.stations["S1"],
            env=env,
            config=config.simulation,
            service=runtime.service,
            oracle=runtime.oracle,
            stations=runtime.stations,
            doors=DoorModel(list(runtime.rooms), np.random.default_rng(1)),
            tolerance=config.planner.tolerance,
        )

    def test_executes_task_and_reports_door(self, config):
        env = simpy.Environment()
        start = config.simulation.start_epoch_s
        runtime = build_allocation_service(config, clock=lambda: start + env.now, seed_pool=False)
        room = runtime.rooms["A"]
        runtime.pool.insert(make_simple("T1", room.x, room.y, room_id="A", deadline=start + 3600.0))

        robot = self.make_robot(config, runtime, env)
        env.process(robot.run())
        env.run(until=200)

        assert robot.metrics.tasks_completed == 1
        assert robot.metrics.total_distance_m > 0.0
        assert robot.battery_pct < 100.0
        # Pool drained; the robot is now waiting and has reported the door
        assert robot.state is RobotState.WAITING
        assert runtime.service.stats.observations_recorded == 1
        assert runtime.store.last_update("A") is not None

    def test_waits_when_no_task(self, config):
        env = simpy.Environment()
        runtime = build_allocation_service(config, clock=lambda: env.now, seed_pool=False)
        robot = self.make_robot(config, runtime, env)
        env.process(robot.run())
        env.run(until=config.simulation.retry_interval_s * 3 + 1)
        assert robot.metrics.no_task_responses == 4
        assert robot.metrics.tasks_completed == 0

    def test_charging_task_refills_battery(self, config):
        env = simpy.Environment()
        runtime = build_allocation_service(config, clock=lambda: env.now, seed_pool=False)
        runtime.pool.insert(ChargingTask("C1", "S2", runtime.stations["S2"], remaining_time=0.0))
        robot = self.make_robot(config, runtime, env, start=Pose(0.0, 5.0))
        env.process(robot.run())
        env.run(until=1000)
        assert robot.metrics.charging_visits == 1
        assert robot.battery_pct == 100.0


class TestFleetSimulation:
    def test_pool_is_conserved(self, config):
        sim = FleetSimulation(config)
        results = sim.run()

        seeded = config.generator.initial_tasks + len(config.doors)
        refills = int(config.simulation.duration_s // config.simulation.refill_interval_s)
        added = seeded + refills * config.simulation.refill_batch
        assert results.total_assignments > 0
        assert results.final_pool_size == added - results.total_assignments
        assert results.tasks_completed <= results.total_assignments
        assert sum(results.assignments_by_kind.values()) == results.total_assignments

    def test_requests_cover_assignments_and_misses(self, config):
        results = FleetSimulation(config).run()
        assert results.total_requests == results.total_assignments + results.no_task_responses

    def test_observations_are_recorded(self, config):
        results = FleetSimulation(config).run()
        assert results.observations_recorded > 0

    def test_deterministic(self, config):
        a = FleetSimulation(config).run()
        b = FleetSimulation(config).run()
        assert a == b

    def test_n_robots_override(self, config):
        sim = FleetSimulation(config, n_robots=4)
        results = sim.run()
        assert len(results.robot_summaries) == 4
        assert sorted(results.robot_summaries) == [f"ROBOT_{i:02d}" for i in range(4)]

    def test_battery_stays_in_range(self, config):
        sim_cfg = dataclasses.replace(config.simulation, battery_drain_per_meter=0.5)
        results = FleetSimulation(dataclasses.replace(config, simulation=sim_cfg)).run()
        for summary in results.robot_summaries.values():
            assert 0.0 <= summary["final_battery_pct"] <= 100.0


def test_simulation_config_duration():
    assert SimulationConfig(duration_hours=2.0).duration_s == 7200.0
