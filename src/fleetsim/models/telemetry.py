"""Telemetry sample model."""

from __future__ import annotations

from pydantic import Field

from fleetsim.models._base import FleetBaseModel, UtcDatetime
from fleetsim.models.geo import Coordinate


class TelemetrySample(FleetBaseModel):
    """One timestamped observation of a vehicle.

    Produced by the movement simulator, consumed by the fuel predictor,
    the alert synthesizer and the distribution hub. Never mutated.
    """

    vehicle_id: str
    timestamp: UtcDatetime
    position: Coordinate
    speed_kmh: float = Field(ge=0)
    fuel_level: float = Field(ge=0, le=100)
    heading: float = 0.0
    altitude_m: float | None = None
    engine_temperature_c: float | None = None
    ambient_temperature_c: float | None = None
    fuel_consumption_l_per_100km: float | None = None
    engine_rpm: float | None = None
    battery_voltage: float | None = None
