"""
Process start-up wiring.

Builds every collaborator once, from configuration, and passes handles
explicitly: registries → roadmap → path oracle → probability store →
cost engine → pool → service. Registry problems and duplicate task ids
raise here, as does an unreadable possibility table, and must stop the
process before it serves any request.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Callable

from src.allocation.cost import CostEngine
from src.allocation.generator import TaskGenerator
from src.allocation.pool import TaskPool
from src.allocation.service import AllocationService
from src.environment.probability import (
    InMemoryProbabilityStore,
    ProbabilityStore,
    load_possibility_table,
)
from src.environment.time_buckets import office_time_bucket
from src.fleet.config import AllocatorConfig
from src.fleet.registry import PoseRegistry, load_door_table, load_registry
from src.fleet.roadmap import Roadmap, build_roadmap
from src.planning.oracle import HttpPathOracle, PathOracle, RoadmapPathOracle

logger = logging.getLogger(__name__)


@dataclass
class AllocatorRuntime:
    """Everything the transport or simulation layer needs a handle on."""

    config: AllocatorConfig
    rooms: PoseRegistry
    stations: PoseRegistry
    doors: dict[str, str]
    roadmap: Roadmap
    oracle: PathOracle
    store: ProbabilityStore
    engine: CostEngine
    pool: TaskPool
    generator: TaskGenerator
    service: AllocationService


def build_allocation_service(
    config: AllocatorConfig,
    oracle: PathOracle | None = None,
    store: ProbabilityStore | None = None,
    clock: Callable[[], float] = time.time,
    seed_pool: bool = True,
) -> AllocatorRuntime:
    """Construct the allocator from configuration.

    Args:
        config: Full allocator configuration.
        oracle: Path oracle override; otherwise HTTP if `planner.url` is set,
            else the local roadmap.
        store: Probability store override; otherwise an in-memory store,
            seeded from `probability.table_path` when set.
        clock: Wall-clock source used for request times and initial deadlines.
        seed_pool: Fill the pool with `generator.initial_tasks` tasks plus one
            door-check task per configured door.

    Raises:
        RegistryLoadError: Rooms or stations are missing or malformed.
        DuplicateIdError: Seeding produced a duplicate task id.
        StoreFailure: The configured possibility table cannot be loaded.
    """
    rooms = load_registry("room", config.rooms)
    stations = load_registry("charging station", config.stations)
    doors = load_door_table(config.doors, rooms)
    logger.info("Loaded %d room positions", len(rooms))
    logger.info("Loaded %d station positions", len(stations))

    roadmap = build_roadmap(config.roadmap, rooms, stations)
    for issue in roadmap.validate():
        logger.warning("Roadmap: %s", issue)

    if oracle is None:
        if config.planner.url:
            oracle = HttpPathOracle(config.planner.url, timeout_s=config.planner.timeout_s)
        else:
            oracle = RoadmapPathOracle(roadmap)

    if store is None:
        store = InMemoryProbabilityStore(config.probability.default_possibility)
        if config.probability.table_path:
            n_cells = load_possibility_table(store, config.probability.table_path)
            logger.info(
                "Loaded %d possibility cells from %s", n_cells, config.probability.table_path
            )

    bucket_fn = functools.partial(
        office_time_bucket,
        bucket_minutes=config.probability.bucket_minutes,
        tz=config.probability.timezone,
    )

    engine = CostEngine(
        oracle=oracle,
        store=store,
        task_weights=config.task_weights,
        door_weights=config.door_weights,
        charging_weights=config.charging_weights,
        battery_model=config.battery_model,
        tolerance=config.planner.tolerance,
        bucket_fn=bucket_fn,
    )

    pool = TaskPool()
    generator = TaskGenerator(config.generator, rooms, stations)
    if seed_pool:
        now = clock()
        pool.extend(generator.generate(config.generator.initial_tasks, now))
        pool.extend(generator.door_check_tasks(doors))
        logger.info("Seeded pool with %d tasks", len(pool))

    service = AllocationService(
        pool=pool,
        engine=engine,
        store=store,
        bucket_fn=bucket_fn,
        scoring_workers=config.service.scoring_workers,
        clock=clock,
    )

    return AllocatorRuntime(
        config=config,
        rooms=rooms,
        stations=stations,
        doors=doors,
        roadmap=roadmap,
        oracle=oracle,
        store=store,
        engine=engine,
        pool=pool,
        generator=generator,
        service=service,
    )
