"""Internal constants shared across the library."""

EARTH_RADIUS_KM = 6371.0

# ------------------------------------------------------------------
# Movement model defaults
# ------------------------------------------------------------------

BASE_SPEED_KMH = 35.0
SPEED_JITTER_KMH = 4.0
STOP_PENALTY_KMH = 15.0
MAX_ACCELERATION_KMH_PER_S = 5.0
# City-speed ceiling. A tuning choice, not a physical limit.
SPEED_CEILING_KMH = 60.0
# Fuel percentage drained per kilometre travelled.
CONSUMPTION_FACTOR = 0.1
REROUTE_PROBABILITY = 0.05
TICK_INTERVAL_S = 3.0

# Randomized start (speed and fuel ranges used when placing a vehicle).
START_SPEED_RANGE_KMH: tuple[float, float] = (20.0, 45.0)
START_FUEL_RANGE_PCT: tuple[float, float] = (30.0, 80.0)

# ------------------------------------------------------------------
# Auxiliary sensor readings: (centre, half-width)
# ------------------------------------------------------------------

ALTITUDE_M: tuple[float, float] = (2600.0, 10.0)
ENGINE_TEMPERATURE_C: tuple[float, float] = (85.0, 1.5)
AMBIENT_TEMPERATURE_C: tuple[float, float] = (22.0, 1.0)
CONSUMPTION_SPREAD_L_PER_100KM = 0.15
BATTERY_VOLTAGE_V: tuple[float, float] = (13.8, 0.3)
IDLE_RPM = 800.0
RPM_PER_KMH = 35.0

DEFAULT_AVERAGE_CONSUMPTION_L_PER_100KM = 8.5
DEFAULT_FUEL_CAPACITY_L = 50.0

# ------------------------------------------------------------------
# Fuel prediction
# ------------------------------------------------------------------

PREDICTION_WINDOW_SIZE = 20
MIN_CONSUMPTION_RATE_PER_HOUR = 0.01
DEFAULT_CONSUMPTION_RATE_PER_HOUR = 0.1
CRITICAL_AUTONOMY_HOURS = 1.0
WARNING_AUTONOMY_HOURS = 2.0

# ------------------------------------------------------------------
# Alert thresholds
# ------------------------------------------------------------------

LOW_FUEL_PCT = 20.0
VERY_LOW_FUEL_PCT = 10.0
HIGH_ENGINE_TEMPERATURE_C = 80.0
VERY_HIGH_ENGINE_TEMPERATURE_C = 90.0
HIGH_SPEED_KMH = 100.0
VERY_HIGH_SPEED_KMH = 120.0
HIGH_CONSUMPTION_L_PER_100KM = 15.0
VERY_HIGH_CONSUMPTION_L_PER_100KM = 20.0
MAINTENANCE_DUE_DAYS = 180
MAINTENANCE_OVERDUE_DAYS = 365

# ------------------------------------------------------------------
# Real-time hub
# ------------------------------------------------------------------

DEFAULT_HUB_URL = "wss://localhost:7162/RealTime"
DEFAULT_FLEET_ID = "3fa85f64-5717-4562-b3fc-2c963f66afa6"
RECONNECT_DELAY_S = 5.0
MAX_RECONNECT_ATTEMPTS = 5
CONNECT_TIMEOUT_S = 10.0
SEND_TIMEOUT_S = 5.0
SUBSCRIBER_QUEUE_SIZE = 1000
OUTBOUND_QUEUE_SIZE = 1000

# WebSocket close codes (RFC 6455).
CLOSE_NORMAL = 1000
CLOSE_ABNORMAL = 1006

JOIN_FLEET_GROUP = "JoinFleetGroup"

# Trip analytics: speeds at or below this count as stopped/idle.
IDLE_SPEED_KMH = 5.0
