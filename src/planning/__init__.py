from src.planning.oracle import (
    HttpPathOracle,
    PathOracle,
    PlanningFailure,
    RoadmapPathOracle,
    route_length,
)

__all__ = [
    "HttpPathOracle",
    "PathOracle",
    "PlanningFailure",
    "RoadmapPathOracle",
    "route_length",
]
