"""
Task pool and cost-ranked allocation.

Quick start:
    from src.allocation import build_allocation_service
    runtime = build_allocation_service(load_config("config/default_allocator.yaml"))
    assignment = runtime.service.handle_request(request)
"""

from src.allocation.bootstrap import AllocatorRuntime, build_allocation_service
from src.allocation.cost import BatteryEstimate, CostEngine
from src.allocation.errors import (
    AllocationError,
    DuplicateIdError,
    EmptyPoolError,
    NoEligibleTaskError,
    NoTaskAvailable,
)
from src.allocation.generator import TaskGenerator
from src.allocation.pool import TaskPool
from src.allocation.service import AllocationService, AllocationState
from src.allocation.tasks import (
    ChargingTask,
    CompoundTask,
    DoorCheckTask,
    RobotRequest,
    ScoredTask,
    SimpleTask,
    Task,
    TaskAssignment,
    TaskOutcome,
    TaskStop,
)

__all__ = [
    "AllocatorRuntime",
    "build_allocation_service",
    "BatteryEstimate",
    "CostEngine",
    "AllocationError",
    "DuplicateIdError",
    "EmptyPoolError",
    "NoEligibleTaskError",
    "NoTaskAvailable",
    "TaskGenerator",
    "TaskPool",
    "AllocationService",
    "AllocationState",
    "ChargingTask",
    "CompoundTask",
    "DoorCheckTask",
    "RobotRequest",
    "ScoredTask",
    "SimpleTask",
    "Task",
    "TaskAssignment",
    "TaskOutcome",
    "TaskStop",
]
