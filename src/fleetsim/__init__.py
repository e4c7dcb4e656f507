"""fleetsim - Fleet telemetry simulation and real-time distribution."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetsim")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetsim.alerts import AlertSynthesizer
from fleetsim.analytics import TripSummary, summarize_trip
from fleetsim.config import (
    AlertThresholds,
    FleetSimConfig,
    HubConfig,
    MqttSettings,
    PredictionConfig,
    SimulationConfig,
)
from fleetsim.exceptions import (
    EnvelopeError,
    FleetSimConfigError,
    FleetSimError,
    FleetSimTransportError,
    RouteValidationError,
    SubscriptionClosedError,
)
from fleetsim.models import (
    AlertKind,
    AlertLevel,
    AlertRecord,
    AlertSeverity,
    BehaviorProfile,
    BehaviorType,
    Coordinate,
    FuelPrediction,
    RealtimeUpdate,
    Route,
    TelemetrySample,
    Vehicle,
    VehicleType,
)
from fleetsim.prediction import FuelPredictionEngine
from fleetsim.realtime import ConnectionState, DistributionHub, HubStatus, Subscription, SubscriptionFilter
from fleetsim.routes import RouteCatalog
from fleetsim.simulation import MovementSimulator, SimulationEngine, SimulationStatus, VehicleSimState
from fleetsim.state import SnapshotStore

__all__ = [
    "__version__",
    "AlertKind",
    "AlertLevel",
    "AlertRecord",
    "AlertSeverity",
    "AlertSynthesizer",
    "AlertThresholds",
    "BehaviorProfile",
    "BehaviorType",
    "ConnectionState",
    "Coordinate",
    "DistributionHub",
    "EnvelopeError",
    "FleetSimConfig",
    "FleetSimConfigError",
    "FleetSimError",
    "FleetSimTransportError",
    "FuelPrediction",
    "FuelPredictionEngine",
    "HubConfig",
    "HubStatus",
    "MovementSimulator",
    "MqttSettings",
    "PredictionConfig",
    "RealtimeUpdate",
    "Route",
    "RouteCatalog",
    "RouteValidationError",
    "SimulationConfig",
    "SimulationEngine",
    "SimulationStatus",
    "SnapshotStore",
    "Subscription",
    "SubscriptionClosedError",
    "SubscriptionFilter",
    "TelemetrySample",
    "TripSummary",
    "Vehicle",
    "VehicleSimState",
    "VehicleType",
    "summarize_trip",
]
