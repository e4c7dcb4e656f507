"""Movement simulation and the engine that ticks it."""

from fleetsim.simulation.engine import SimulationEngine, SimulationStatus
from fleetsim.simulation.movement import MovementSimulator
from fleetsim.simulation.state import SegmentPhase, SensorReadings, VehicleSimState

__all__ = [
    "MovementSimulator",
    "SegmentPhase",
    "SensorReadings",
    "SimulationEngine",
    "SimulationStatus",
    "VehicleSimState",
]
