from src.simulation.engine import FleetSimulation
from src.simulation.metrics import SimulationMetrics, compute_metrics
from src.simulation.robot import DoorModel, Robot, RobotState

__all__ = [
    "FleetSimulation",
    "SimulationMetrics",
    "compute_metrics",
    "DoorModel",
    "Robot",
    "RobotState",
]
