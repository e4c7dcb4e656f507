"""Alert record model."""

from __future__ import annotations

from fleetsim.models._base import FleetBaseModel, FleetEnum, UtcDatetime


class AlertKind(FleetEnum):
    SPEED = "speed"
    FUEL = "fuel"
    TEMPERATURE = "temperature"
    MAINTENANCE = "maintenance"


class AlertSeverity(FleetEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertRecord(FleetBaseModel):
    """A threshold crossing reported for one vehicle.

    Read-only once emitted. Read/unread state belongs to whoever stores
    the alert, not to this record.
    """

    id: str
    vehicle_id: str
    kind: AlertKind
    severity: AlertSeverity
    title: str = ""
    message: str
    timestamp: UtcDatetime
    is_predictive: bool = False
