"""
Tests for configuration loading, registries, task generation and start-up wiring.

Run with: pytest tests/test_config.py -v
"""

import dataclasses
from pathlib import Path

import pytest

from src.allocation.bootstrap import build_allocation_service
from src.allocation.generator import TaskGenerator
from src.allocation.tasks import (
    ChargingTask,
    CompoundTask,
    DoorCheckTask,
    RobotRequest,
    SimpleTask,
    TaskOutcome,
)
from src.environment.probability import DoorStatus, StoreFailure
from src.fleet.config import AllocatorConfig, GeneratorConfig, PlannerConfig, load_config
from src.fleet.geometry import Pose
from src.fleet.registry import RegistryLoadError, load_door_table, load_registry
from src.planning.oracle import HttpPathOracle, RoadmapPathOracle
from tests.helpers import NOW

DEFAULT_CONFIG = Path(__file__).resolve().parents[1] / "config" / "default_allocator.yaml"


@pytest.fixture
def config() -> AllocatorConfig:
    return load_config(DEFAULT_CONFIG)


@pytest.fixture
def rooms():
    return load_registry("room", {"A": [0.0, 0.0], "B": [5.0, 0.0], "C": [10.0, 0.0]})


@pytest.fixture
def stations():
    return load_registry("charging station", {"S1": [-2.0, 0.0, 3.1416]})


# ── Config ────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_default_file(self, config):
        assert config.task_weights.wt_pri == 5.0
        assert config.door_weights.max_staleness_s == 86400
        assert config.service.scoring_workers == 4
        assert sorted(config.rooms) == list("ABCDEFGH")
        assert config.doors == {"door_A": "A", "door_E": "E"}
        assert config.planner.url is None

    def test_missing_sections_use_defaults(self, tmp_path):
        path = tmp_path / "minimal.yaml"
        path.write_text("task_weights:\n  wt_wait: 0.5\nrooms:\n  A: [1, 2]\n", encoding="utf-8")
        config = load_config(path)
        assert config.task_weights.wt_wait == 0.5
        assert config.task_weights.wt_pri == 5.0
        assert config.battery_model.linear_weight == 0.01
        assert config.rooms == {"A": [1, 2]}
        assert config.stations == {}

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("task_weights:\n  wt_wiat: 0.5\n", encoding="utf-8")
        with pytest.raises(TypeError):
            load_config(path)

    def test_simulation_duration(self):
        sim = dataclasses.replace(AllocatorConfig().simulation, duration_hours=0.5)
        assert sim.duration_s == 1800.0


# ── Registries ────────────────────────────────────────────────────


class TestRegistries:
    def test_lookup(self, rooms):
        assert rooms["B"] == Pose(5.0, 0.0)
        assert "C" in rooms
        assert list(rooms) == ["A", "B", "C"]
        assert len(rooms) == 3

    def test_unknown_id(self, rooms):
        with pytest.raises(KeyError, match="Z"):
            rooms["Z"]

    def test_yaw_is_optional(self, stations):
        assert stations["S1"].yaw == pytest.approx(3.1416)

    @pytest.mark.parametrize("table", [None, {}])
    def test_empty_table_is_fatal(self, table):
        with pytest.raises(RegistryLoadError):
            load_registry("room", table)

    @pytest.mark.parametrize("entry", [[1.0], [1.0, 2.0, 3.0, 4.0], ["x", 1.0], None])
    def test_bad_entry_is_fatal(self, entry):
        with pytest.raises(RegistryLoadError):
            load_registry("room", {"A": entry})

    def test_door_must_reference_known_room(self, rooms):
        assert load_door_table({"door_A": "A"}, rooms) == {"door_A": "A"}
        with pytest.raises(RegistryLoadError, match="door_Z"):
            load_door_table({"door_A": "A", "door_Z": "Z"}, rooms)


# ── Generator ─────────────────────────────────────────────────────


class TestTaskGenerator:
    def test_ids_are_sequential(self, rooms, stations):
        gen = TaskGenerator(GeneratorConfig(), rooms, stations)
        tasks = gen.generate(5, NOW)
        assert [t.task_id for t in tasks] == [f"TSK_{i:05d}" for i in range(1, 6)]

    def test_same_seed_same_tasks(self, rooms, stations):
        a = TaskGenerator(GeneratorConfig(random_seed=7), rooms, stations).generate(30, NOW)
        b = TaskGenerator(GeneratorConfig(random_seed=7), rooms, stations).generate(30, NOW)
        assert a == b

    def test_simple_task_fields(self, rooms, stations):
        cfg = GeneratorConfig(deadline_min_s=100.0, deadline_max_s=200.0, priority_min=2, priority_max=3)
        gen = TaskGenerator(cfg, rooms, stations)
        for _ in range(50):
            task = gen.simple_task(NOW)
            assert isinstance(task, SimpleTask)
            assert NOW + 100.0 <= task.deadline <= NOW + 200.0
            assert task.priority in (2, 3)
            assert task.pose == rooms[task.room_id]

    def test_compound_stops_are_distinct_and_ordered(self, rooms, stations):
        cfg = GeneratorConfig(compound_max_stops=3, deadline_min_s=60.0)
        gen = TaskGenerator(cfg, rooms, stations)
        for _ in range(20):
            task = gen.compound_task(NOW)
            room_ids = [s.room_id for s in task.stops]
            assert 2 <= len(room_ids) <= 3
            assert len(set(room_ids)) == len(room_ids)
            deadlines = [s.deadline for s in task.stops]
            assert deadlines == sorted(deadlines)

    def test_variant_mix(self, rooms, stations):
        cfg = GeneratorConfig(compound_fraction=0.0, charging_fraction=1.0)
        tasks = TaskGenerator(cfg, rooms, stations).generate(10, NOW)
        assert all(isinstance(t, ChargingTask) for t in tasks)
        assert all(0.0 <= t.remaining_time <= cfg.remaining_time_max_s for t in tasks)

        cfg = GeneratorConfig(compound_fraction=1.0, charging_fraction=0.0)
        tasks = TaskGenerator(cfg, rooms, stations).generate(10, NOW)
        assert all(isinstance(t, CompoundTask) for t in tasks)

    def test_door_check_tasks(self, rooms, stations):
        gen = TaskGenerator(GeneratorConfig(), rooms, stations)
        tasks = gen.door_check_tasks({"door_B": "B", "door_A": "A"})
        assert [(t.door_id, t.room_id) for t in tasks] == [("door_A", "A"), ("door_B", "B")]
        assert all(isinstance(t, DoorCheckTask) for t in tasks)
        assert tasks[1].pose == rooms["B"]


# ── Start-up wiring ───────────────────────────────────────────────


class TestBuildAllocationService:
    def test_default_config(self, config):
        runtime = build_allocation_service(config, clock=lambda: NOW)
        try:
            assert isinstance(runtime.oracle, RoadmapPathOracle)
            assert len(runtime.rooms) == 8
            assert len(runtime.stations) == 2
            assert runtime.roadmap.validate() == []
            assert len(runtime.pool) == config.generator.initial_tasks + len(config.doors)
            assert runtime.pool.counts_by_kind()["door"] == 2
        finally:
            runtime.service.shutdown()

    def test_serves_a_request(self, config):
        runtime = build_allocation_service(config, clock=lambda: NOW)
        try:
            request = RobotRequest(
                pose=runtime.stations["S1"],
                battery_level=80.0,
                last_task=TaskOutcome(completed=True, door_status=DoorStatus.OPEN, room_id="A"),
            )
            before = len(runtime.pool)
            assignment = runtime.service.handle_request(request)
            assert assignment.task_id not in runtime.pool
            assert len(runtime.pool) == before - 1
            assert runtime.store.last_update("A") == NOW
        finally:
            runtime.service.shutdown()

    def test_remote_planner_when_url_set(self, config):
        config = dataclasses.replace(config, planner=PlannerConfig(url="http://planner.local"))
        runtime = build_allocation_service(config, clock=lambda: NOW, seed_pool=False)
        try:
            assert isinstance(runtime.oracle, HttpPathOracle)
            assert len(runtime.pool) == 0
        finally:
            runtime.service.shutdown()
            runtime.oracle.close()

    def test_missing_rooms_is_fatal(self, config):
        with pytest.raises(RegistryLoadError):
            build_allocation_service(dataclasses.replace(config, rooms={}))

    def test_missing_stations_is_fatal(self, config):
        with pytest.raises(RegistryLoadError):
            build_allocation_service(dataclasses.replace(config, stations={}))

    def test_possibility_table_seeds_store(self, config, tmp_path):
        table = tmp_path / "possibility.yaml"
        table.write_text("A:\n  Tue-22:00: [3, 4]\n", encoding="utf-8")
        probability = dataclasses.replace(config.probability, table_path=str(table))
        config = dataclasses.replace(config, probability=probability)

        runtime = build_allocation_service(config, clock=lambda: NOW, seed_pool=False)
        try:
            assert runtime.store.read_open_possibility("A", "Tue-22:00") == pytest.approx(75.0)
            assert runtime.store.read_open_possibility("B", "Tue-22:00") == 50.0
            assert runtime.engine.possibility("A", NOW) == pytest.approx(75.0)
        finally:
            runtime.service.shutdown()

    @pytest.mark.parametrize("content", [None, "A:\n  Tue-22:00: [5, 3]\n", "A: [1, 2]\n"])
    def test_bad_possibility_table_is_fatal(self, config, tmp_path, content):
        table = tmp_path / "possibility.yaml"
        if content is not None:
            table.write_text(content, encoding="utf-8")
        probability = dataclasses.replace(config.probability, table_path=str(table))
        with pytest.raises(StoreFailure):
            build_allocation_service(dataclasses.replace(config, probability=probability))
