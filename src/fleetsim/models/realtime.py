"""Real-time update envelope.

A :class:`RealtimeUpdate` carries exactly one payload: a location fix, a
sensor reading or an alert. The payload is a discriminated union on
``payload_type`` so an update can never hold two kinds at once.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from fleetsim.models._base import FleetBaseModel, UtcDatetime, utcnow
from fleetsim.models.alert import AlertKind, AlertRecord
from fleetsim.models.telemetry import TelemetrySample


class LocationPayload(FleetBaseModel):
    payload_type: Literal["location"] = "location"
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    speed: float = Field(default=0.0, allow_inf_nan=False)
    heading: float = Field(default=0.0, allow_inf_nan=False)


class SensorPayload(FleetBaseModel):
    payload_type: Literal["sensor"] = "sensor"
    fuel_level: float | None = None
    temperature: float | None = None
    engine_rpm: float | None = None
    battery_voltage: float | None = None
    ambient_temperature: float | None = None
    fuel_consumption: float | None = None
    altitude: float | None = None


class AlertPayload(FleetBaseModel):
    payload_type: Literal["alert"] = "alert"
    alert: AlertRecord


Payload = Annotated[LocationPayload | SensorPayload | AlertPayload, Field(discriminator="payload_type")]


class RealtimeUpdate(FleetBaseModel):
    """Dispatch envelope fanned out by the distribution hub."""

    vehicle_id: str
    payload: Payload
    timestamp: UtcDatetime = Field(default_factory=utcnow)

    @classmethod
    def location_from(cls, sample: TelemetrySample) -> RealtimeUpdate:
        return cls(
            vehicle_id=sample.vehicle_id,
            timestamp=sample.timestamp,
            payload=LocationPayload(
                latitude=sample.position.latitude,
                longitude=sample.position.longitude,
                speed=sample.speed_kmh,
                heading=sample.heading,
            ),
        )

    @classmethod
    def sensor_from(cls, sample: TelemetrySample) -> RealtimeUpdate:
        return cls(
            vehicle_id=sample.vehicle_id,
            timestamp=sample.timestamp,
            payload=SensorPayload(
                fuel_level=sample.fuel_level,
                temperature=sample.engine_temperature_c,
                engine_rpm=sample.engine_rpm,
                battery_voltage=sample.battery_voltage,
                ambient_temperature=sample.ambient_temperature_c,
                fuel_consumption=sample.fuel_consumption_l_per_100km,
                altitude=sample.altitude_m,
            ),
        )

    @classmethod
    def alert_from(cls, alert: AlertRecord) -> RealtimeUpdate:
        return cls(vehicle_id=alert.vehicle_id, timestamp=alert.timestamp, payload=AlertPayload(alert=alert))

    @property
    def payload_type(self) -> str:
        return self.payload.payload_type

    @property
    def is_location(self) -> bool:
        return isinstance(self.payload, LocationPayload)

    @property
    def is_sensor(self) -> bool:
        return isinstance(self.payload, SensorPayload)

    @property
    def is_alert(self) -> bool:
        return isinstance(self.payload, AlertPayload)

    @property
    def is_fuel_alert(self) -> bool:
        return isinstance(self.payload, AlertPayload) and self.payload.alert.kind == AlertKind.FUEL
