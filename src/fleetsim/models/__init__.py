"""Value types shared by the simulator, the predictor and the hub."""

from fleetsim.models._base import FleetBaseModel, FleetEnum, UtcDatetime, parse_timestamp
from fleetsim.models.alert import AlertKind, AlertRecord, AlertSeverity
from fleetsim.models.behavior import BEHAVIOR_PROFILES, BehaviorProfile, BehaviorType
from fleetsim.models.geo import Coordinate, Route
from fleetsim.models.prediction import AlertLevel, FuelPrediction
from fleetsim.models.realtime import AlertPayload, LocationPayload, RealtimeUpdate, SensorPayload
from fleetsim.models.telemetry import TelemetrySample
from fleetsim.models.vehicle import Vehicle, VehicleType

__all__ = [
    "AlertKind",
    "AlertLevel",
    "AlertPayload",
    "AlertRecord",
    "AlertSeverity",
    "BEHAVIOR_PROFILES",
    "BehaviorProfile",
    "BehaviorType",
    "Coordinate",
    "FleetBaseModel",
    "FleetEnum",
    "FuelPrediction",
    "LocationPayload",
    "RealtimeUpdate",
    "Route",
    "SensorPayload",
    "TelemetrySample",
    "UtcDatetime",
    "Vehicle",
    "VehicleType",
    "parse_timestamp",
]
