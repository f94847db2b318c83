"""Planar poses and the small amount of geometry the cost model needs."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Pose:
    """A robot or goal pose in the map frame.

    Attributes:
        x: X coordinate in meters.
        y: Y coordinate in meters.
        yaw: Heading in radians (0 = +x axis, counter-clockwise positive).
    """

    x: float
    y: float
    yaw: float = 0.0

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> Pose:
        """Build a pose from `[x, y]` or `[x, y, yaw]`."""
        if len(values) not in (2, 3):
            raise ValueError(f"Pose needs 2 or 3 values, got {list(values)!r}")
        return cls(*(float(v) for v in values))

    def distance_to(self, other: Pose) -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "yaw": self.yaw}


def heading(from_pose: Pose, to_pose: Pose) -> float:
    """Heading of the segment from one pose to another, in radians."""
    return math.atan2(to_pose.y - from_pose.y, to_pose.x - from_pose.x)
