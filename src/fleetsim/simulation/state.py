"""Per-vehicle simulation state."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import StrEnum

from fleetsim.models.behavior import BehaviorProfile
from fleetsim.models.geo import Coordinate, Route
from fleetsim.models.telemetry import TelemetrySample
from fleetsim.models.vehicle import Vehicle


class SegmentPhase(StrEnum):
    """Transition taken by the most recent tick."""

    ADVANCING_SEGMENT = "advancing_segment"
    SEGMENT_COMPLETE = "segment_complete"
    ROUTE_EXHAUSTED = "route_exhausted"


@dataclasses.dataclass(frozen=True, slots=True)
class SensorReadings:
    """Auxiliary onboard readings of the last tick."""

    altitude_m: float
    engine_temperature_c: float
    ambient_temperature_c: float
    fuel_consumption_l_per_100km: float
    engine_rpm: float
    battery_voltage: float


@dataclasses.dataclass(frozen=True, slots=True)
class VehicleSimState:
    """Snapshot of one simulated vehicle.

    Owned by the movement simulator; every tick returns a new instance.
    ``waypoint_index`` is the waypoint the vehicle last passed and
    ``waypoint_index + direction`` the one it is heading to, so both are
    always valid indices of ``route.waypoints``.
    """

    vehicle: Vehicle
    position: Coordinate
    speed_kmh: float
    fuel_level: float
    route: Route
    waypoint_index: int
    progress: float
    direction: int
    behavior: BehaviorProfile
    last_tick: datetime
    readings: SensorReadings
    heading: float = 0.0
    phase: SegmentPhase = SegmentPhase.ADVANCING_SEGMENT

    def __post_init__(self) -> None:
        if self.direction not in (1, -1):
            raise ValueError(f"direction must be +1 or -1, got {self.direction}")
        count = len(self.route.waypoints)
        if not (0 <= self.waypoint_index < count and 0 <= self.waypoint_index + self.direction < count):
            raise ValueError(
                f"waypoint_index {self.waypoint_index} heading {self.direction:+d} "
                f"is invalid for route {self.route.name!r} ({count} waypoints)"
            )
        if not 0.0 <= self.progress < 1.0:
            raise ValueError(f"progress must be within [0, 1), got {self.progress}")
        if self.speed_kmh < 0:
            raise ValueError(f"speed_kmh must be >= 0, got {self.speed_kmh}")
        if not 0.0 <= self.fuel_level <= 100.0:
            raise ValueError(f"fuel_level must be within [0, 100], got {self.fuel_level}")

    @property
    def vehicle_id(self) -> str:
        return self.vehicle.vehicle_id

    @property
    def next_index(self) -> int:
        return self.waypoint_index + self.direction

    @property
    def stalled(self) -> bool:
        """Out of fuel. Terminal for the run, but ticks keep producing samples."""
        return self.fuel_level <= 0.0

    def to_sample(self) -> TelemetrySample:
        readings = self.readings
        return TelemetrySample(
            vehicle_id=self.vehicle_id,
            timestamp=self.last_tick,
            position=self.position,
            speed_kmh=self.speed_kmh,
            fuel_level=self.fuel_level,
            heading=self.heading,
            altitude_m=readings.altitude_m,
            engine_temperature_c=readings.engine_temperature_c,
            ambient_temperature_c=readings.ambient_temperature_c,
            fuel_consumption_l_per_100km=readings.fuel_consumption_l_per_100km,
            engine_rpm=readings.engine_rpm,
            battery_voltage=readings.battery_voltage,
        )
