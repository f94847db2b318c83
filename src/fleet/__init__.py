from src.fleet.config import AllocatorConfig, load_config
from src.fleet.geometry import Pose
from src.fleet.registry import PoseRegistry, RegistryLoadError, load_registry
from src.fleet.roadmap import Roadmap, build_roadmap

__all__ = [
    "AllocatorConfig",
    "load_config",
    "Pose",
    "PoseRegistry",
    "RegistryLoadError",
    "load_registry",
    "Roadmap",
    "build_roadmap",
]
