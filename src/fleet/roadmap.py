"""Roadmap graph representation.

The building is modeled as an undirected graph where:
- Nodes represent physical locations (corridor waypoints, rooms, charging stations)
- Edges represent traversable corridor segments with a length in meters
- The graph backs the local path oracle; the allocator itself never reads it

Rooms and stations hang off the corridor grid on a single spur edge to
their nearest waypoint.
"""

from __future__ import annotations

import math
from enum import Enum, auto
from typing import TYPE_CHECKING

import networkx as nx

from src.fleet.geometry import Pose

if TYPE_CHECKING:
    from src.fleet.config import RoadmapConfig
    from src.fleet.registry import PoseRegistry


class NodeType(Enum):
    """Types of locations on the roadmap."""

    WAYPOINT = auto()  # Corridor grid point
    ROOM = auto()  # Room entrance
    STATION = auto()  # Charging dock


class Roadmap:
    """Undirected corridor graph.

    Wraps a NetworkX Graph with typed nodes carrying x/y coordinates,
    keeping the raw graph accessible for pathfinding.

    Attributes:
        graph: The underlying NetworkX Graph.
    """

    def __init__(self) -> None:
        self.graph = nx.Graph()

    # ── Node management ──────────────────────────────────────────────

    def add_node(self, node_id: str, node_type: NodeType, x: float, y: float, **attrs) -> None:
        """Add a node with spatial coordinates and type.

        Args:
            node_id: Unique identifier (e.g., "W_1_3" for grid row 1, column 3).
            node_type: What kind of location this is.
            x: X coordinate in meters.
            y: Y coordinate in meters.
            **attrs: Additional attributes.
        """
        self.graph.add_node(node_id, node_type=node_type, x=x, y=y, **attrs)

    def add_edge(self, node_a: str, node_b: str) -> None:
        """Connect two nodes with a straight segment; length is derived."""
        length = self.node_pose(node_a).distance_to(self.node_pose(node_b))
        self.graph.add_edge(node_a, node_b, distance=length)

    def node_pose(self, node_id: str) -> Pose:
        data = self.graph.nodes[node_id]
        return Pose(float(data["x"]), float(data["y"]))

    def nodes_by_type(self, node_type: NodeType) -> list[str]:
        """Return all node IDs of a given type."""
        return [n for n, d in self.graph.nodes(data=True) if d.get("node_type") == node_type]

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def n_nodes(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def n_edges(self) -> int:
        return self.graph.number_of_edges()

    def nearest_node(self, pose: Pose) -> tuple[str, float]:
        """Closest node to a pose by straight-line distance.

        Raises:
            ValueError: If the roadmap has no nodes.
        """
        best_node = None
        best_dist = math.inf
        for node_id, data in self.graph.nodes(data=True):
            d = math.hypot(data["x"] - pose.x, data["y"] - pose.y)
            if d < best_dist:
                best_node, best_dist = node_id, d
        if best_node is None:
            raise ValueError("Roadmap is empty")
        return best_node, best_dist

    def shortest_path(self, source: str, target: str) -> list[str]:
        """Node IDs along the shortest path. Raises nx.NetworkXNoPath if unreachable."""
        return nx.shortest_path(self.graph, source, target, weight="distance")

    def shortest_path_distance(self, source: str, target: str) -> float:
        return nx.shortest_path_length(self.graph, source, target, weight="distance")

    def validate(self) -> list[str]:
        """Run basic sanity checks on the graph.

        Returns:
            List of warning/error messages (empty = all good).
        """
        issues = []
        if self.n_nodes == 0:
            return ["Roadmap has no nodes"]

        if not nx.is_connected(self.graph):
            components = list(nx.connected_components(self.graph))
            issues.append(
                f"Roadmap is not connected: {len(components)} components "
                f"(sizes: {[len(c) for c in components]})"
            )

        if not self.nodes_by_type(NodeType.ROOM):
            issues.append("No nodes of type ROOM")
        return issues


def build_roadmap(
    config: RoadmapConfig,
    rooms: PoseRegistry,
    stations: PoseRegistry,
) -> Roadmap:
    """Build a corridor grid and attach every room and station to it.

    Waypoint (r, c) sits at (c * spacing, r * spacing); horizontal and
    vertical neighbours are connected.
    """
    g = Roadmap()
    step = config.spacing_m

    for r in range(config.rows):
        for c in range(config.cols):
            g.add_node(f"W_{r}_{c}", NodeType.WAYPOINT, x=c * step, y=r * step)

    for r in range(config.rows):
        for c in range(config.cols):
            if c + 1 < config.cols:
                g.add_edge(f"W_{r}_{c}", f"W_{r}_{c + 1}")
            if r + 1 < config.rows:
                g.add_edge(f"W_{r}_{c}", f"W_{r + 1}_{c}")

    waypoints = g.nodes_by_type(NodeType.WAYPOINT)

    def _attach(node_id: str, node_type: NodeType, pose: Pose) -> None:
        # Nearest waypoint is searched before the new node exists
        anchor = min(waypoints, key=lambda w: g.node_pose(w).distance_to(pose))
        g.add_node(node_id, node_type, x=pose.x, y=pose.y)
        g.add_edge(node_id, anchor)

    for room_id, pose in rooms.items():
        _attach(f"R_{room_id}", NodeType.ROOM, pose)
    for station_id, pose in stations.items():
        _attach(f"C_{station_id}", NodeType.STATION, pose)

    return g
