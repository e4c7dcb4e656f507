"""Movement simulator.

Advances a vehicle along its route waypoint by waypoint. Each tick:

1. draws a target speed from the behavior profile plus bounded jitter,
2. optionally applies a stochastic traffic stop,
3. accelerates toward the target at a bounded rate, clamped to the
   city-speed ceiling,
4. converts the distance covered into progress along the current
   segment, crossing as many waypoints as the distance allows,
5. flips direction at either route end, occasionally switching to a new
   route and behavior,
6. interpolates the new position and drains fuel.

All randomness comes from the injected :class:`random.Random`, so a
seeded generator makes ticks fully deterministic.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from fleetsim import _constants as C
from fleetsim import geodesy
from fleetsim.config import SimulationConfig
from fleetsim.models.behavior import BehaviorProfile, BehaviorType
from fleetsim.models.geo import Route
from fleetsim.models.telemetry import TelemetrySample
from fleetsim.models.vehicle import Vehicle
from fleetsim.routes import RouteCatalog
from fleetsim.simulation.state import SegmentPhase, SensorReadings, VehicleSimState

_logger = logging.getLogger(__name__)


class MovementSimulator:
    """Stateless tick function over :class:`VehicleSimState` values."""

    def __init__(
        self,
        catalog: RouteCatalog,
        config: SimulationConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or SimulationConfig()
        self._rng = rng or random.Random()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    # ------------------------------------------------------------------
    # Initial placement
    # ------------------------------------------------------------------

    def initial_state(self, vehicle: Vehicle, route: Route, now: datetime) -> VehicleSimState:
        """Place *vehicle* on *route*.

        Explicit ``vehicle.fuel_level`` and ``vehicle.behavior`` always win
        over the configured start policy.
        """
        rng = self._rng
        count = len(route.waypoints)
        if self._config.randomize_start:
            direction = rng.choice((1, -1))
            index = rng.randrange(0, count - 1) if direction == 1 else rng.randrange(1, count)
            progress = rng.random()
            speed = rng.uniform(*C.START_SPEED_RANGE_KMH)
            fuel = rng.uniform(*C.START_FUEL_RANGE_PCT)
            behavior = BehaviorProfile.random(rng)
        else:
            direction, index, progress = 1, 0, 0.0
            speed = 0.0
            fuel = 100.0
            behavior = BehaviorProfile.of(BehaviorType.NORMAL)

        if vehicle.fuel_level is not None:
            fuel = vehicle.fuel_level
        if vehicle.behavior is not None:
            behavior = BehaviorProfile.of(vehicle.behavior)
        speed = min(speed, self._config.speed_ceiling_kmh)
        if fuel <= 0:
            speed = 0.0

        start = route.waypoints[index]
        target = route.waypoints[index + direction]
        return VehicleSimState(
            vehicle=vehicle,
            position=start.lerp(target, progress),
            speed_kmh=speed,
            fuel_level=fuel,
            route=route,
            waypoint_index=index,
            progress=progress,
            direction=direction,
            behavior=behavior,
            last_tick=now,
            readings=self._readings(vehicle, speed, stalled=fuel <= 0),
            heading=geodesy.bearing_degrees(start, target),
        )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, state: VehicleSimState, elapsed_seconds: float) -> tuple[VehicleSimState, TelemetrySample]:
        """Advance *state* by *elapsed_seconds* and return the new state and its sample.

        A non-positive elapsed time is a no-op: the same state is returned
        together with a sample identical to the previous one.
        """
        if elapsed_seconds <= 0:
            return state, state.to_sample()

        now = state.last_tick + timedelta(seconds=elapsed_seconds)

        if state.stalled:
            stalled = VehicleSimState(
                vehicle=state.vehicle,
                position=state.position,
                speed_kmh=0.0,
                fuel_level=0.0,
                route=state.route,
                waypoint_index=state.waypoint_index,
                progress=state.progress,
                direction=state.direction,
                behavior=state.behavior,
                last_tick=now,
                readings=self._readings(state.vehicle, 0.0, stalled=True),
                heading=state.heading,
                phase=SegmentPhase.ADVANCING_SEGMENT,
            )
            return stalled, stalled.to_sample()

        target = self._target_speed(state.behavior)
        speed = self._accelerate(state.speed_kmh, target, elapsed_seconds)
        distance_km = speed * elapsed_seconds / 3600.0

        route = state.route
        index = state.waypoint_index
        direction = state.direction
        progress = state.progress
        behavior = state.behavior
        phase = SegmentPhase.ADVANCING_SEGMENT

        if distance_km > 0 and route.length_km > 0:
            route, index, direction, progress, behavior, phase = self._advance(
                route, index, direction, progress, behavior, distance_km
            )

        start = route.waypoints[index]
        target_wp = route.waypoints[index + direction]
        position = start.lerp(target_wp, progress)
        if position != state.position and route is state.route:
            heading = geodesy.bearing_degrees(state.position, position)
        else:
            heading = geodesy.bearing_degrees(start, target_wp)

        fuel = max(0.0, state.fuel_level - distance_km * self._config.consumption_factor)

        new_state = VehicleSimState(
            vehicle=state.vehicle,
            position=position,
            speed_kmh=speed,
            fuel_level=fuel,
            route=route,
            waypoint_index=index,
            progress=progress,
            direction=direction,
            behavior=behavior,
            last_tick=now,
            readings=self._readings(state.vehicle, speed, stalled=False),
            heading=heading,
            phase=phase,
        )
        return new_state, new_state.to_sample()

    def _target_speed(self, behavior: BehaviorProfile) -> float:
        config = self._config
        target = config.base_speed_kmh * behavior.speed_multiplier
        if config.speed_jitter_kmh > 0:
            target += self._rng.uniform(-config.speed_jitter_kmh, config.speed_jitter_kmh)
        if config.stochastic_stops and self._rng.random() < behavior.stop_probability:
            target -= config.stop_penalty_kmh
        return max(0.0, target)

    def _accelerate(self, current: float, target: float, elapsed_seconds: float) -> float:
        max_step = self._config.max_acceleration_kmh_per_s * elapsed_seconds
        delta = target - current
        step = max(-max_step, min(max_step, delta))
        return max(0.0, min(self._config.speed_ceiling_kmh, current + step))

    def _advance(
        self,
        route: Route,
        index: int,
        direction: int,
        progress: float,
        behavior: BehaviorProfile,
        distance_km: float,
    ) -> tuple[Route, int, int, float, BehaviorProfile, SegmentPhase]:
        phase = SegmentPhase.ADVANCING_SEGMENT
        remaining = distance_km
        count = len(route.waypoints)

        while True:
            segment = route.segment_length_km(index, direction)
            needed = (1.0 - progress) * segment
            if remaining < needed:
                advanced = progress + remaining / segment
                if advanced < 1.0:
                    return route, index, direction, advanced, behavior, phase
                remaining = 0.0
            else:
                remaining -= needed

            # Reached the next waypoint; zero-length segments land here directly.
            index += direction
            progress = 0.0
            phase = SegmentPhase.SEGMENT_COMPLETE

            if not 0 <= index + direction < count:
                direction = -direction
                phase = SegmentPhase.ROUTE_EXHAUSTED
                if self._config.reroute_probability > 0 and self._rng.random() < self._config.reroute_probability:
                    new_route = self._catalog.choose(self._rng)
                    new_behavior = BehaviorProfile.random(self._rng)
                    new_index = self._rng.randrange(0, len(new_route.waypoints) - 1)
                    _logger.debug(
                        "Vehicle rerouted %s -> %s behavior=%s",
                        route.name,
                        new_route.name,
                        new_behavior.behavior,
                    )
                    return new_route, new_index, 1, 0.0, new_behavior, phase

    def _readings(self, vehicle: Vehicle, speed: float, *, stalled: bool) -> SensorReadings:
        rng = self._rng

        def around(centre: float, half_width: float) -> float:
            return centre + rng.uniform(-half_width, half_width)

        if stalled:
            rpm = 0.0
            consumption = 0.0
        else:
            rpm = around(C.IDLE_RPM + speed * C.RPM_PER_KMH, 50.0)
            consumption = max(
                0.0,
                around(vehicle.average_consumption_l_per_100km, C.CONSUMPTION_SPREAD_L_PER_100KM),
            )
        return SensorReadings(
            altitude_m=around(*C.ALTITUDE_M),
            engine_temperature_c=around(*C.ENGINE_TEMPERATURE_C),
            ambient_temperature_c=around(*C.AMBIENT_TEMPERATURE_C),
            fuel_consumption_l_per_100km=consumption,
            engine_rpm=rpm,
            battery_voltage=around(*C.BATTERY_VOLTAGE_V),
        )
