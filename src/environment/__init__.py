from src.environment.probability import (
    DoorStatus,
    InMemoryProbabilityStore,
    ProbabilityStore,
    StoreFailure,
    load_possibility_table,
)
from src.environment.time_buckets import office_time_bucket

__all__ = [
    "DoorStatus",
    "InMemoryProbabilityStore",
    "ProbabilityStore",
    "StoreFailure",
    "load_possibility_table",
    "office_time_bucket",
]
