"""Alert synthesizer.

Maps a telemetry sample (plus optional fuel prediction and vehicle
descriptor) to zero or more :class:`AlertRecord` values. Several alerts may
fire for one sample; deduplication and read state are left to whoever
stores them.
"""

from __future__ import annotations

import secrets

from fleetsim.config import AlertThresholds
from fleetsim.models.alert import AlertKind, AlertRecord, AlertSeverity
from fleetsim.models.prediction import AlertLevel, FuelPrediction
from fleetsim.models.telemetry import TelemetrySample
from fleetsim.models.vehicle import Vehicle

_TITLES: dict[str, str] = {
    "fuel": "Low fuel level",
    "consumption": "High fuel consumption",
    "temperature": "High engine temperature",
    "speed": "Excessive speed",
    "fuel_prediction": "Fuel autonomy prediction",
    "maintenance": "Maintenance required",
}


def _alert_id(prefix: str, vehicle_id: str) -> str:
    return f"{prefix}_{vehicle_id}_{secrets.token_hex(6)}"


def _fmt(value: float | None, unit: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:.1f}{unit}"


class AlertSynthesizer:
    """Pure threshold mapping from telemetry to alert records."""

    def __init__(self, thresholds: AlertThresholds | None = None) -> None:
        self._t = thresholds or AlertThresholds()

    @property
    def thresholds(self) -> AlertThresholds:
        return self._t

    def synthesize(
        self,
        sample: TelemetrySample,
        prediction: FuelPrediction | None = None,
        vehicle: Vehicle | None = None,
    ) -> list[AlertRecord]:
        t = self._t
        label = vehicle.display_name if vehicle is not None else sample.vehicle_id
        alerts: list[AlertRecord] = []

        def emit(
            prefix: str,
            kind: AlertKind,
            severity: AlertSeverity,
            message: str,
            *,
            predictive: bool = False,
        ) -> None:
            alerts.append(
                AlertRecord(
                    id=_alert_id(prefix, sample.vehicle_id),
                    vehicle_id=sample.vehicle_id,
                    kind=kind,
                    severity=severity,
                    title=_TITLES[prefix],
                    message=message,
                    timestamp=sample.timestamp,
                    is_predictive=predictive,
                )
            )

        if sample.fuel_level < t.low_fuel_pct:
            capacity = _fmt(vehicle.fuel_capacity_l, " L") if vehicle is not None else "N/A"
            emit(
                "fuel",
                AlertKind.FUEL,
                AlertSeverity.HIGH if sample.fuel_level < t.very_low_fuel_pct else AlertSeverity.MEDIUM,
                f"Vehicle {label} has {sample.fuel_level:.1f}% fuel (capacity: {capacity})",
            )

        consumption = sample.fuel_consumption_l_per_100km
        if consumption is not None and consumption > t.high_consumption_l_per_100km:
            average = _fmt(vehicle.average_consumption_l_per_100km) if vehicle is not None else "N/A"
            emit(
                "consumption",
                AlertKind.FUEL,
                AlertSeverity.HIGH if consumption > t.very_high_consumption_l_per_100km else AlertSeverity.MEDIUM,
                f"Vehicle {label} is consuming {consumption:.1f} L/100km (average: {average} L/100km)",
            )

        engine_temp = sample.engine_temperature_c
        if engine_temp is not None and engine_temp > t.high_engine_temperature_c:
            emit(
                "temperature",
                AlertKind.TEMPERATURE,
                AlertSeverity.HIGH if engine_temp > t.very_high_engine_temperature_c else AlertSeverity.MEDIUM,
                f"Vehicle {label} engine temperature is {engine_temp:.1f}°C "
                f"(ambient: {_fmt(sample.ambient_temperature_c, '°C')})",
            )

        if sample.speed_kmh > t.high_speed_kmh:
            emit(
                "speed",
                AlertKind.SPEED,
                AlertSeverity.HIGH if sample.speed_kmh > t.very_high_speed_kmh else AlertSeverity.MEDIUM,
                f"Vehicle {label} is travelling at {sample.speed_kmh:.1f} km/h",
            )

        if prediction is not None and prediction.is_low_fuel:
            emit(
                "fuel_prediction",
                AlertKind.FUEL,
                AlertSeverity.HIGH if prediction.alert_level == AlertLevel.CRITICAL else AlertSeverity.MEDIUM,
                self.fuel_prediction_message(prediction),
                predictive=True,
            )

        if vehicle is not None and vehicle.last_maintenance is not None:
            days = (sample.timestamp - vehicle.last_maintenance).days
            if days > t.maintenance_due_days:
                emit(
                    "maintenance",
                    AlertKind.MAINTENANCE,
                    AlertSeverity.HIGH if days > t.maintenance_overdue_days else AlertSeverity.MEDIUM,
                    f"Vehicle {label} requires maintenance (last service {days} days ago)",
                    predictive=True,
                )

        return alerts

    @staticmethod
    def fuel_prediction_message(prediction: FuelPrediction) -> str:
        hours = round(prediction.estimated_autonomy_hours, 1)
        fuel = f"{prediction.current_fuel_level:.1f}%"
        if prediction.alert_level == AlertLevel.CRITICAL:
            return f"CRITICAL: less than 1 hour of autonomy left ({hours}h). Fuel level: {fuel}"
        if prediction.alert_level == AlertLevel.WARNING:
            return f"WARNING: low autonomy ({hours}h). Fuel level: {fuel}"
        return f"Fuel level {fuel}. Estimated autonomy: {hours}h"
