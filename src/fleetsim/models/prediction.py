"""Fuel autonomy prediction model."""

from __future__ import annotations

from fleetsim.models._base import FleetBaseModel, FleetEnum, UtcDatetime


class AlertLevel(FleetEnum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class FuelPrediction(FleetBaseModel):
    """Autonomy estimate derived from a vehicle's trailing sample window."""

    vehicle_id: str
    current_fuel_level: float
    consumption_rate_per_hour: float
    estimated_autonomy_hours: float
    alert_level: AlertLevel
    last_updated: UtcDatetime
    sample_count: int = 0

    @property
    def is_low_fuel(self) -> bool:
        return self.alert_level != AlertLevel.NORMAL
