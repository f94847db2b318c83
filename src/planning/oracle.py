"""
Path oracles: turn a start pose and a goal pose into an ordered route.

The allocator only consumes the `PathOracle` protocol. Two adapters ship:

  RoadmapPathOracle   shortest path on the local networkx corridor graph
  HttpPathOracle      remote planner service over HTTP (httpx, bounded timeout)

Any failure to produce a route, including an empty one, surfaces as
`PlanningFailure`. Callers treat it as "this candidate is invalid for this
request", never as fatal.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Protocol

import httpx
import networkx as nx

from src.fleet.geometry import Pose, heading

if TYPE_CHECKING:
    from src.fleet.roadmap import Roadmap

logger = logging.getLogger(__name__)


class PlanningFailure(RuntimeError):
    """The path oracle was unreachable, timed out, or returned no route."""


class PathOracle(Protocol):
    """Protocol for route planning between two poses."""

    def plan(self, start: Pose, goal: Pose, tolerance: float) -> list[Pose]:
        """Return the ordered route from start to goal.

        Raises:
            PlanningFailure: If no route can be produced.
        """


def _with_headings(points: list[Pose], start_yaw: float) -> list[Pose]:
    """Assign each point the heading of the segment that reaches it."""
    route = [Pose(points[0].x, points[0].y, start_yaw)]
    yaw = start_yaw
    for prev, cur in zip(points, points[1:]):
        if prev.distance_to(cur) > 1e-9:
            yaw = heading(prev, cur)
        route.append(Pose(cur.x, cur.y, yaw))
    return route


class RoadmapPathOracle:
    """Plans on the local corridor graph.

    The start pose joins the roadmap at its nearest node. The goal must lie
    within `tolerance` meters of a roadmap node, mirroring the goal
    tolerance of a navigation stack planner.
    """

    def __init__(self, roadmap: Roadmap) -> None:
        self.roadmap = roadmap
        self.total_plans: int = 0
        self.total_failures: int = 0

    def plan(self, start: Pose, goal: Pose, tolerance: float) -> list[Pose]:
        self.total_plans += 1
        try:
            start_node, _ = self.roadmap.nearest_node(start)
            goal_node, goal_offset = self.roadmap.nearest_node(goal)
            if goal_offset > tolerance:
                raise PlanningFailure(
                    f"Goal ({goal.x:.2f}, {goal.y:.2f}) is {goal_offset:.2f}m from the roadmap "
                    f"(tolerance {tolerance:.2f}m)"
                )
            nodes = self.roadmap.shortest_path(start_node, goal_node)
        except (nx.NetworkXNoPath, nx.NodeNotFound, ValueError) as exc:
            self.total_failures += 1
            raise PlanningFailure(str(exc)) from exc
        except PlanningFailure:
            self.total_failures += 1
            raise

        points = [start] + [self.roadmap.node_pose(n) for n in nodes] + [goal]
        # Drop duplicates where the start or goal coincides with a node
        deduped = [points[0]]
        for p in points[1:]:
            if p.distance_to(deduped[-1]) > 1e-9:
                deduped.append(p)
        return _with_headings(deduped, start.yaw)


class HttpPathOracle:
    """Calls a remote planner service.

    Expects `POST {base_url}/plan` with start, goal and tolerance, answering
    `{"poses": [{"x": .., "y": .., "yaw": ..}, ...]}`. Transport errors,
    timeouts, non-2xx responses and empty plans all raise `PlanningFailure`.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 2.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_s)

    def plan(self, start: Pose, goal: Pose, tolerance: float) -> list[Pose]:
        payload = {"start": start.as_dict(), "goal": goal.as_dict(), "tolerance": tolerance}
        try:
            resp = self._client.post(f"{self.base_url}/plan", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PlanningFailure(f"Planner request failed: {exc}") from exc

        if not isinstance(data, dict):
            raise PlanningFailure(f"Malformed plan: expected an object, got {type(data).__name__}")
        poses = data.get("poses") or []
        if not poses:
            raise PlanningFailure(
                f"Empty plan from ({start.x:.3f}, {start.y:.3f}) to ({goal.x:.3f}, {goal.y:.3f})"
            )
        try:
            return [Pose(float(p["x"]), float(p["y"]), float(p.get("yaw", 0.0))) for p in poses]
        except (KeyError, TypeError, ValueError) as exc:
            raise PlanningFailure(f"Malformed plan: {exc}") from exc

    def close(self) -> None:
        self._client.close()


def route_length(route: list[Pose]) -> float:
    """Total Euclidean length of a route."""
    return math.fsum(a.distance_to(b) for a, b in zip(route, route[1:]))
