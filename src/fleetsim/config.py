"""Configuration for fleetsim.

Every tuning constant of the movement model, the fuel predictor, the alert
synthesizer and the real-time hub lives here so it can be overridden per
run or from ``FLEETSIM_*`` environment variables.
"""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetsim import _constants as C
from fleetsim.exceptions import FleetSimConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise FleetSimConfigError(message)


@dataclasses.dataclass(frozen=True)
class SimulationConfig:
    """Movement model parameters.

    Parameters
    ----------
    base_speed_kmh : float
        Cruise speed before the behavior multiplier is applied.
    speed_jitter_kmh : float
        Half-width of the uniform jitter added to the target speed.
        ``0`` disables jitter.
    stochastic_stops : bool
        Apply the behavior's per-tick stop probability.
    stop_penalty_kmh : float
        Speed subtracted from the target when a stop fires.
    max_acceleration_kmh_per_s : float
        Bound on the speed change per second of elapsed time.
    speed_ceiling_kmh : float
        City-speed ceiling. A tuning choice, raise it for highway fleets.
    consumption_factor : float
        Fuel percentage drained per kilometre.
    reroute_probability : float
        Chance of drawing a new route and behavior when a vehicle reaches
        either end of its route.
    randomize_start : bool
        Place vehicles at a random point of their route with random speed,
        fuel and behavior. When ``False`` vehicles start at the first
        waypoint, standing still, with a full tank and normal behavior.
    tick_interval : float
        Seconds between shared simulation ticks.
    """

    base_speed_kmh: float = C.BASE_SPEED_KMH
    speed_jitter_kmh: float = C.SPEED_JITTER_KMH
    stochastic_stops: bool = True
    stop_penalty_kmh: float = C.STOP_PENALTY_KMH
    max_acceleration_kmh_per_s: float = C.MAX_ACCELERATION_KMH_PER_S
    speed_ceiling_kmh: float = C.SPEED_CEILING_KMH
    consumption_factor: float = C.CONSUMPTION_FACTOR
    reroute_probability: float = C.REROUTE_PROBABILITY
    randomize_start: bool = True
    tick_interval: float = C.TICK_INTERVAL_S

    def __post_init__(self) -> None:
        _require(self.base_speed_kmh >= 0, "base_speed_kmh must be >= 0")
        _require(self.speed_jitter_kmh >= 0, "speed_jitter_kmh must be >= 0")
        _require(self.stop_penalty_kmh >= 0, "stop_penalty_kmh must be >= 0")
        _require(self.max_acceleration_kmh_per_s > 0, "max_acceleration_kmh_per_s must be > 0")
        _require(self.speed_ceiling_kmh > 0, "speed_ceiling_kmh must be > 0")
        _require(self.consumption_factor >= 0, "consumption_factor must be >= 0")
        _require(0.0 <= self.reroute_probability <= 1.0, "reroute_probability must be within [0, 1]")
        _require(self.tick_interval > 0, "tick_interval must be > 0")


@dataclasses.dataclass(frozen=True)
class PredictionConfig:
    """Fuel autonomy estimation parameters."""

    window_size: int = C.PREDICTION_WINDOW_SIZE
    min_rate_per_hour: float = C.MIN_CONSUMPTION_RATE_PER_HOUR
    default_rate_per_hour: float = C.DEFAULT_CONSUMPTION_RATE_PER_HOUR
    critical_hours: float = C.CRITICAL_AUTONOMY_HOURS
    warning_hours: float = C.WARNING_AUTONOMY_HOURS

    def __post_init__(self) -> None:
        _require(self.window_size >= 2, "window_size must be >= 2")
        _require(self.min_rate_per_hour > 0, "min_rate_per_hour must be > 0")
        _require(self.default_rate_per_hour > 0, "default_rate_per_hour must be > 0")
        _require(
            0 < self.critical_hours <= self.warning_hours,
            "thresholds must satisfy 0 < critical_hours <= warning_hours",
        )


@dataclasses.dataclass(frozen=True)
class AlertThresholds:
    """Fixed thresholds used by the alert synthesizer."""

    low_fuel_pct: float = C.LOW_FUEL_PCT
    very_low_fuel_pct: float = C.VERY_LOW_FUEL_PCT
    high_engine_temperature_c: float = C.HIGH_ENGINE_TEMPERATURE_C
    very_high_engine_temperature_c: float = C.VERY_HIGH_ENGINE_TEMPERATURE_C
    high_speed_kmh: float = C.HIGH_SPEED_KMH
    very_high_speed_kmh: float = C.VERY_HIGH_SPEED_KMH
    high_consumption_l_per_100km: float = C.HIGH_CONSUMPTION_L_PER_100KM
    very_high_consumption_l_per_100km: float = C.VERY_HIGH_CONSUMPTION_L_PER_100KM
    maintenance_due_days: int = C.MAINTENANCE_DUE_DAYS
    maintenance_overdue_days: int = C.MAINTENANCE_OVERDUE_DAYS


@dataclasses.dataclass(frozen=True)
class MqttSettings:
    """Broker details for the MQTT transport."""

    host: str = "localhost"
    port: int = 1883
    topic: str = "fleetsim/realtime"
    publish_topic: str | None = None
    client_id: str = "fleetsim"
    username: str | None = None
    password: str | None = None
    tls: bool = False
    keepalive: int = 60


@dataclasses.dataclass(frozen=True)
class HubConfig:
    """Real-time distribution hub configuration.

    Parameters
    ----------
    url : str
        WebSocket endpoint of the real-time backend.
    fleet_id : str
        Fleet group joined right after the transport handshake.
    token : str or None
        Bearer token appended as ``?token=`` to the WebSocket URL.
    transport : str
        ``"websocket"`` (aiohttp) or ``"mqtt"`` (paho-mqtt).
    reconnect_delay : float
        Fixed delay in seconds before each reconnect attempt.
    max_reconnect_attempts : int
        Reconnects tried after a failure before giving up for good.
    connect_timeout : float
        Bound on the transport handshake.
    send_timeout : float
        Bound on each transport send.
    subscriber_queue_size : int
        Per-subscriber buffer. When full the oldest update is dropped.
        ``0`` means unbounded.
    outbound_queue_size : int
        Buffer of updates waiting to be forwarded to the transport. It is
        emptied when a connection fails; nothing queued before the failure
        is sent over the next connection.
    forward_published : bool
        Also send locally published updates over the transport.
    mqtt : MqttSettings
        Broker details used when ``transport == "mqtt"``.
    """

    url: str = C.DEFAULT_HUB_URL
    fleet_id: str = C.DEFAULT_FLEET_ID
    token: str | None = None
    transport: str = "websocket"
    reconnect_delay: float = C.RECONNECT_DELAY_S
    max_reconnect_attempts: int = C.MAX_RECONNECT_ATTEMPTS
    connect_timeout: float = C.CONNECT_TIMEOUT_S
    send_timeout: float = C.SEND_TIMEOUT_S
    subscriber_queue_size: int = C.SUBSCRIBER_QUEUE_SIZE
    outbound_queue_size: int = C.OUTBOUND_QUEUE_SIZE
    forward_published: bool = False
    mqtt: MqttSettings = dataclasses.field(default_factory=MqttSettings)

    def __post_init__(self) -> None:
        _require(self.transport in {"websocket", "mqtt"}, f"unsupported transport {self.transport!r}")
        _require(self.reconnect_delay >= 0, "reconnect_delay must be >= 0")
        _require(self.max_reconnect_attempts >= 0, "max_reconnect_attempts must be >= 0")
        _require(self.connect_timeout > 0, "connect_timeout must be > 0")
        _require(self.send_timeout > 0, "send_timeout must be > 0")
        _require(self.subscriber_queue_size >= 0, "subscriber_queue_size must be >= 0")
        _require(self.outbound_queue_size >= 0, "outbound_queue_size must be >= 0")


@dataclasses.dataclass(frozen=True)
class FleetSimConfig:
    """Top-level configuration bundling every component's settings."""

    simulation: SimulationConfig = dataclasses.field(default_factory=SimulationConfig)
    prediction: PredictionConfig = dataclasses.field(default_factory=PredictionConfig)
    alerts: AlertThresholds = dataclasses.field(default_factory=AlertThresholds)
    hub: HubConfig = dataclasses.field(default_factory=HubConfig)

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetSimConfig:
        """Create configuration from ``FLEETSIM_*`` environment variables.

        Explicit keyword arguments (``simulation=``, ``prediction=``,
        ``alerts=``, ``hub=``) take precedence over environment values.

        Raises
        ------
        FleetSimConfigError
            When a variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        def _get(key: str, cast: Any) -> Any:
            raw = env.get(key)
            if raw is None:
                return None
            try:
                return cast(raw)
            except ValueError as exc:
                raise FleetSimConfigError(f"{key}={raw!r} is not a valid {cast.__name__}") from exc

        sim_kwargs: dict[str, Any] = {}
        _ENV_SIM_MAP = {
            "FLEETSIM_TICK_INTERVAL": ("tick_interval", float),
            "FLEETSIM_BASE_SPEED_KMH": ("base_speed_kmh", float),
            "FLEETSIM_SPEED_CEILING_KMH": ("speed_ceiling_kmh", float),
            "FLEETSIM_REROUTE_PROBABILITY": ("reroute_probability", float),
            "FLEETSIM_CONSUMPTION_FACTOR": ("consumption_factor", float),
        }
        for env_key, (field_name, cast) in _ENV_SIM_MAP.items():
            val = _get(env_key, cast)
            if val is not None:
                sim_kwargs[field_name] = val
        if "FLEETSIM_RANDOMIZE_START" in env:
            sim_kwargs["randomize_start"] = _env_bool(env.get("FLEETSIM_RANDOMIZE_START"), True)

        prediction_kwargs: dict[str, Any] = {}
        _ENV_PREDICTION_MAP = {
            "FLEETSIM_PREDICTION_WINDOW": ("window_size", int),
            "FLEETSIM_CRITICAL_HOURS": ("critical_hours", float),
            "FLEETSIM_WARNING_HOURS": ("warning_hours", float),
        }
        for env_key, (field_name, cast) in _ENV_PREDICTION_MAP.items():
            val = _get(env_key, cast)
            if val is not None:
                prediction_kwargs[field_name] = val

        mqtt_kwargs: dict[str, Any] = {}
        _ENV_MQTT_MAP = {
            "FLEETSIM_MQTT_HOST": ("host", str),
            "FLEETSIM_MQTT_PORT": ("port", int),
            "FLEETSIM_MQTT_TOPIC": ("topic", str),
            "FLEETSIM_MQTT_CLIENT_ID": ("client_id", str),
            "FLEETSIM_MQTT_USERNAME": ("username", str),
            "FLEETSIM_MQTT_PASSWORD": ("password", str),
        }
        for env_key, (field_name, cast) in _ENV_MQTT_MAP.items():
            val = _get(env_key, cast)
            if val is not None:
                mqtt_kwargs[field_name] = val
        if "FLEETSIM_MQTT_TLS" in env:
            mqtt_kwargs["tls"] = _env_bool(env.get("FLEETSIM_MQTT_TLS"), False)

        hub_kwargs: dict[str, Any] = {}
        _ENV_HUB_MAP = {
            "FLEETSIM_HUB_URL": ("url", str),
            "FLEETSIM_FLEET_ID": ("fleet_id", str),
            "FLEETSIM_HUB_TOKEN": ("token", str),
            "FLEETSIM_TRANSPORT": ("transport", str),
            "FLEETSIM_RECONNECT_DELAY": ("reconnect_delay", float),
            "FLEETSIM_MAX_RECONNECT_ATTEMPTS": ("max_reconnect_attempts", int),
            "FLEETSIM_CONNECT_TIMEOUT": ("connect_timeout", float),
            "FLEETSIM_SEND_TIMEOUT": ("send_timeout", float),
            "FLEETSIM_SUBSCRIBER_QUEUE_SIZE": ("subscriber_queue_size", int),
        }
        for env_key, (field_name, cast) in _ENV_HUB_MAP.items():
            val = _get(env_key, cast)
            if val is not None:
                hub_kwargs[field_name] = val
        if "FLEETSIM_FORWARD_PUBLISHED" in env:
            hub_kwargs["forward_published"] = _env_bool(env.get("FLEETSIM_FORWARD_PUBLISHED"), False)
        if mqtt_kwargs:
            hub_kwargs["mqtt"] = MqttSettings(**mqtt_kwargs)

        config_kwargs: dict[str, Any] = {
            "simulation": SimulationConfig(**sim_kwargs),
            "prediction": PredictionConfig(**prediction_kwargs),
            "alerts": AlertThresholds(),
            "hub": HubConfig(**hub_kwargs),
        }
        config_kwargs.update(overrides)

        return cls(**config_kwargs)
