"""
Room and charging-station position registries.

Both registries are loaded once at startup from the `rooms:` and
`stations:` tables of the allocator config. An empty or malformed table
is fatal: the service must not answer requests without positions.
"""

from __future__ import annotations

from typing import Iterator, Mapping, Sequence

from src.fleet.geometry import Pose


class RegistryLoadError(RuntimeError):
    """A registry could not be populated at startup."""


class PoseRegistry:
    """Read-only identifier → Pose lookup.

    Attributes:
        name: Human-readable registry name used in log and error messages.
    """

    def __init__(self, name: str, poses: Mapping[str, Pose]) -> None:
        self.name = name
        self._poses = dict(poses)

    def __getitem__(self, key: str) -> Pose:
        try:
            return self._poses[key]
        except KeyError:
            raise KeyError(f"Unknown {self.name} id {key!r}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._poses

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._poses))

    def __len__(self) -> int:
        return len(self._poses)

    def items(self) -> list[tuple[str, Pose]]:
        return sorted(self._poses.items())


def load_registry(name: str, table: Mapping[str, Sequence[float]] | None) -> PoseRegistry:
    """Build a registry from a raw `{id: [x, y(, yaw)]}` table.

    Raises:
        RegistryLoadError: If the table is missing, empty, or has a bad entry.
    """
    if not table:
        raise RegistryLoadError(f"No {name} positions configured")

    poses: dict[str, Pose] = {}
    for key, values in table.items():
        try:
            poses[str(key)] = Pose.from_sequence(values)
        except (TypeError, ValueError) as exc:
            raise RegistryLoadError(f"Bad {name} entry {key!r}: {exc}") from exc
    return PoseRegistry(name, poses)


def load_door_table(doors: Mapping[str, str], rooms: PoseRegistry) -> dict[str, str]:
    """Validate the door → room table against the room registry."""
    unknown = sorted(d for d, room in doors.items() if room not in rooms)
    if unknown:
        raise RegistryLoadError(f"Doors reference unknown rooms: {unknown}")
    return dict(doors)
