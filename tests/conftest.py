"""Shared fixtures for the allocator tests."""

import pytest

from src.allocation.cost import CostEngine
from src.allocation.pool import TaskPool
from src.allocation.service import AllocationService
from src.fleet.config import TaskWeights
from tests.helpers import NOW, FakeOracle, FakeStore


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def weights() -> TaskWeights:
    return TaskWeights(wt_btr=1.0, wt_wait=0.2, wt_psb=1.0, wt_pri=5.0)


@pytest.fixture
def engine(oracle, store, weights) -> CostEngine:
    return CostEngine(oracle, store, task_weights=weights, bucket_fn=lambda ts: "Tue-22:00")


@pytest.fixture
def pool() -> TaskPool:
    return TaskPool()


@pytest.fixture
def service(pool, engine, store) -> AllocationService:
    return AllocationService(
        pool, engine, store, bucket_fn=lambda ts: "Tue-22:00", clock=lambda: NOW
    )
