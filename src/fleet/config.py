"""
Allocator configuration dataclasses and YAML loader.

All cost weights and runtime parameters live here as typed, frozen
dataclasses. Load from YAML with `load_config()` or construct directly
for tests. The configuration is read once at startup and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass(frozen=True)
class TaskWeights:
    """Weights for simple (room visit) and compound tasks.

    Possibility and battery reduce the combined cost; distance, waiting
    time and priority increase it.
    """

    wt_btr: float = 1.0  # battery
    wt_wait: float = 0.2  # seconds of slack before the deadline
    wt_psb: float = 1.0  # door open possibility (0-100)
    wt_pri: float = 5.0  # priority


@dataclass(frozen=True)
class DoorWeights:
    """Weights for door-check tasks."""

    wt_btr: float = 1.0
    wt_update: float = 0.01  # per second since the door was last observed
    wt_psb: float = 1.0
    max_staleness_s: float = 86_400.0  # also used for doors never observed


@dataclass(frozen=True)
class ChargingWeights:
    """Weights for charging-station tasks."""

    wt_remain: float = 1.0  # per second of remaining charge time at the station
    wt_btr: float = 1.0


@dataclass(frozen=True)
class BatteryModel:
    """Battery consumption per unit of route, matching the legacy tuning."""

    linear_weight: float = 0.01  # per metre travelled
    angular_weight: float = 0.001  # per radian of heading change


@dataclass(frozen=True)
class PlannerConfig:
    """Path oracle parameters."""

    tolerance: float = 1.0  # metres a pose may sit away from the roadmap
    timeout_s: float = 2.0
    url: str | None = None  # remote planner; None = local roadmap


@dataclass(frozen=True)
class ProbabilityConfig:
    """Door open-probability model."""

    default_possibility: float = 50.0  # returned for buckets never observed
    bucket_minutes: int = 60
    timezone: str = "UTC"
    table_path: str | None = None  # YAML {room: {bucket: [open, total]}} seeded at start-up


@dataclass(frozen=True)
class GeneratorConfig:
    """Random task generation parameters."""

    initial_tasks: int = 20
    deadline_min_s: float = 300.0
    deadline_max_s: float = 3600.0
    priority_min: int = 1
    priority_max: int = 5
    compound_fraction: float = 0.1
    compound_max_stops: int = 3
    charging_fraction: float = 0.05
    remaining_time_max_s: float = 600.0
    random_seed: int = 42


@dataclass(frozen=True)
class ServiceConfig:
    """Allocation service runtime parameters."""

    scoring_workers: int = 1  # >1 scores candidates on a thread pool
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass(frozen=True)
class SimulationConfig:
    """Fleet simulation parameters."""

    n_robots: int = 3
    duration_hours: float = 1.0
    speed_mps: float = 0.5
    battery_drain_per_meter: float = 0.05
    battery_threshold: float = 20.0
    charge_rate_pct_per_s: float = 0.5
    inspection_time_s: float = 20.0
    retry_interval_s: float = 30.0  # wait after a "no task available" answer
    refill_interval_s: float = 300.0
    refill_batch: int = 5
    start_epoch_s: float = 1_700_000_000.0  # wall clock at simulation time 0
    random_seed: int = 42

    @property
    def duration_s(self) -> float:
        """Returns the simulation duration in seconds"""

        return self.duration_hours * 3600.0


@dataclass(frozen=True)
class RoadmapConfig:
    """Corridor grid used by the local path oracle.

    Waypoints sit on a `rows` x `cols` grid spaced `spacing_m` apart; every
    room and station is attached to its nearest waypoint.
    """

    rows: int = 3
    cols: int = 6
    spacing_m: float = 5.0


@dataclass(frozen=True)
class AllocatorConfig:
    """Top-level configuration aggregating all sub-configs.

    `rooms` and `stations` map identifiers to `[x, y]` or `[x, y, yaw]`;
    `doors` maps a door identifier to the room it guards.
    """

    task_weights: TaskWeights = field(default_factory=TaskWeights)
    door_weights: DoorWeights = field(default_factory=DoorWeights)
    charging_weights: ChargingWeights = field(default_factory=ChargingWeights)
    battery_model: BatteryModel = field(default_factory=BatteryModel)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    probability: ProbabilityConfig = field(default_factory=ProbabilityConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    roadmap: RoadmapConfig = field(default_factory=RoadmapConfig)
    rooms: dict[str, list[float]] = field(default_factory=dict)
    stations: dict[str, list[float]] = field(default_factory=dict)
    doors: dict[str, str] = field(default_factory=dict)


def load_config(path: str | Path) -> AllocatorConfig:
    """Load an AllocatorConfig from a YAML file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Fully constructed AllocatorConfig with all sub-configs.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return AllocatorConfig(
        task_weights=TaskWeights(**raw.get("task_weights", {})),
        door_weights=DoorWeights(**raw.get("door_weights", {})),
        charging_weights=ChargingWeights(**raw.get("charging_weights", {})),
        battery_model=BatteryModel(**raw.get("battery_model", {})),
        planner=PlannerConfig(**raw.get("planner", {})),
        probability=ProbabilityConfig(**raw.get("probability", {})),
        generator=GeneratorConfig(**raw.get("generator", {})),
        service=ServiceConfig(**raw.get("service", {})),
        simulation=SimulationConfig(**raw.get("simulation", {})),
        roadmap=RoadmapConfig(**raw.get("roadmap", {})),
        rooms={str(k): list(v) for k, v in (raw.get("rooms") or {}).items()},
        stations={str(k): list(v) for k, v in (raw.get("stations") or {}).items()},
        doors={str(k): str(v) for k, v in (raw.get("doors") or {}).items()},
    )
