from __future__ import annotations

import math
import random
from datetime import UTC, datetime

import pytest

from fleetsim.config import SimulationConfig
from fleetsim.models import BehaviorType, Route, Vehicle
from fleetsim.routes import RouteCatalog
from fleetsim.simulation import MovementSimulator, SegmentPhase, VehicleSimState

_START = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

_DETERMINISTIC = SimulationConfig(
    speed_jitter_kmh=0.0,
    stochastic_stops=False,
    reroute_probability=0.0,
    randomize_start=False,
)


def _simulator(
    routes: list[Route] | None = None,
    config: SimulationConfig = _DETERMINISTIC,
    seed: int = 1,
) -> MovementSimulator:
    catalog = RouteCatalog(routes) if routes else RouteCatalog.default()
    return MovementSimulator(catalog, config, rng=random.Random(seed))


def _two_point_route() -> Route:
    return Route.from_points("two-point", [(4.60, -74.08), (4.61, -74.08)])


def _assert_invariants(state: VehicleSimState, ceiling: float = 60.0) -> None:
    assert 0.0 <= state.speed_kmh <= ceiling
    assert 0.0 <= state.fuel_level <= 100.0
    count = len(state.route.waypoints)
    assert 0 <= state.waypoint_index < count
    assert 0 <= state.waypoint_index + state.direction < count
    assert 0.0 <= state.progress < 1.0


def test_initial_state_without_randomization_starts_at_first_waypoint() -> None:
    route = _two_point_route()
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)

    assert state.waypoint_index == 0
    assert state.direction == 1
    assert state.progress == 0.0
    assert state.speed_kmh == 0.0
    assert state.fuel_level == 100.0
    assert state.behavior.behavior == BehaviorType.NORMAL
    assert state.position == route.waypoints[0]


def test_explicit_vehicle_fuel_and_behavior_win_over_randomized_start() -> None:
    route = RouteCatalog.default().get("calle-80")
    sim = _simulator(config=SimulationConfig(), seed=5)
    vehicle = Vehicle(vehicle_id="veh-1", fuel_level=12.5, behavior=BehaviorType.CAUTIOUS)
    state = sim.initial_state(vehicle, route, _START)

    assert state.fuel_level == 12.5
    assert state.behavior.behavior == BehaviorType.CAUTIOUS
    _assert_invariants(state)


def test_randomized_start_stays_within_ranges() -> None:
    catalog = RouteCatalog.default()
    sim = MovementSimulator(catalog, SimulationConfig(), rng=random.Random(11))
    for index in range(50):
        state = sim.initial_state(Vehicle(vehicle_id=f"veh-{index}"), catalog.for_index(index), _START)
        assert 20.0 <= state.speed_kmh <= 45.0
        assert 30.0 <= state.fuel_level <= 80.0
        _assert_invariants(state)


def test_acceleration_is_bounded_and_fuel_drains_with_distance() -> None:
    route = _two_point_route()
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)

    state, sample = sim.tick(state, 3.0)

    # 5 km/h per second for 3 seconds from standstill.
    assert math.isclose(state.speed_kmh, 15.0)
    distance_km = 15.0 * 3.0 / 3600.0
    assert math.isclose(state.fuel_level, 100.0 - distance_km * 0.1)
    assert sample.speed_kmh == state.speed_kmh
    assert sample.timestamp == datetime(2026, 1, 1, 8, 0, 3, tzinfo=UTC)
    assert state.phase == SegmentPhase.ADVANCING_SEGMENT


def test_two_waypoint_route_reverses_after_deterministic_tick_count() -> None:
    route = _two_point_route()
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)

    # Speeds ramp 15, 30, 35, 35, ... km/h with 3 s ticks.
    expected_ticks = 0
    travelled = 0.0
    while travelled < route.length_km:
        expected_ticks += 1
        travelled += min(35.0, 15.0 * expected_ticks) * 3.0 / 3600.0

    for tick in range(1, expected_ticks + 1):
        state, _ = sim.tick(state, 3.0)
        _assert_invariants(state)
        if tick < expected_ticks:
            assert state.direction == 1

    assert state.direction == -1
    assert state.phase == SegmentPhase.ROUTE_EXHAUSTED
    assert state.waypoint_index == 1
    assert route.contains(state.position)


def test_leftover_distance_carries_into_next_segment() -> None:
    route = Route.from_points("three-point", [(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)])
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)
    state = VehicleSimState(
        vehicle=state.vehicle,
        position=route.waypoints[0].lerp(route.waypoints[1], 0.9),
        speed_kmh=35.0,
        fuel_level=100.0,
        route=route,
        waypoint_index=0,
        progress=0.9,
        direction=1,
        behavior=state.behavior,
        last_tick=_START,
        readings=state.readings,
    )

    state, _ = sim.tick(state, 3.0)

    segment = route.segment_length_km(0)
    leftover = 35.0 * 3.0 / 3600.0 - 0.1 * segment
    assert state.waypoint_index == 1
    assert state.phase == SegmentPhase.SEGMENT_COMPLETE
    assert math.isclose(state.progress, leftover / route.segment_length_km(1), rel_tol=1e-6)


def test_zero_length_segment_completes_immediately() -> None:
    route = Route.from_points("duplicate", [(0.0, 0.0), (0.0, 0.0), (0.0, 0.01)])
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)

    state, _ = sim.tick(state, 3.0)

    assert state.waypoint_index == 1
    assert state.progress > 0.0
    _assert_invariants(state)


def test_zero_length_route_does_not_move_or_raise() -> None:
    route = Route.from_points("point", [(0.0, 0.0), (0.0, 0.0)])
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)

    for _ in range(5):
        state, sample = sim.tick(state, 3.0)
        assert sample.position == route.waypoints[0]
    _assert_invariants(state)


@pytest.mark.parametrize("elapsed", [0.0, -1.0])
def test_non_positive_elapsed_is_a_no_op(elapsed: float) -> None:
    route = _two_point_route()
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)
    state, previous = sim.tick(state, 3.0)

    same, sample = sim.tick(state, elapsed)

    assert same is state
    assert sample == previous


def test_empty_tank_stalls_without_error() -> None:
    route = _two_point_route()
    sim = _simulator([route])
    state = sim.initial_state(Vehicle(vehicle_id="veh-1", fuel_level=0.0), route, _START)
    position = state.position

    for _ in range(10):
        state, sample = sim.tick(state, 3.0)
        assert state.stalled
        assert sample.speed_kmh == 0.0
        assert sample.fuel_level == 0.0
        assert sample.position == position
        assert sample.engine_rpm == 0.0


def test_seeded_runs_are_reproducible() -> None:
    catalog = RouteCatalog.default()

    def run(seed: int) -> list[tuple[float, float, float]]:
        sim = MovementSimulator(catalog, SimulationConfig(), rng=random.Random(seed))
        state = sim.initial_state(Vehicle(vehicle_id="veh-1"), catalog.get("carrera-7"), _START)
        trace = []
        for _ in range(40):
            state, sample = sim.tick(state, 3.0)
            trace.append((sample.position.latitude, sample.position.longitude, sample.speed_kmh))
        return trace

    assert run(42) == run(42)
    assert run(42) != run(43)


def test_invariants_hold_under_random_behavior_and_rerouting() -> None:
    catalog = RouteCatalog.default()
    config = SimulationConfig(reroute_probability=0.5)
    sim = MovementSimulator(catalog, config, rng=random.Random(2024))
    states = [
        sim.initial_state(Vehicle(vehicle_id=f"veh-{i}"), catalog.for_index(i), _START) for i in range(6)
    ]

    for _ in range(300):
        next_states = []
        for state in states:
            state, sample = sim.tick(state, 3.0)
            _assert_invariants(state)
            assert state.route.contains(state.position, tolerance_km=0.01)
            assert 0.0 <= sample.heading < 360.0
            next_states.append(state)
        states = next_states


def test_fuel_never_increases() -> None:
    catalog = RouteCatalog.default()
    sim = MovementSimulator(catalog, SimulationConfig(), rng=random.Random(9))
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), catalog.get("calle-100"), _START)
    for _ in range(100):
        previous = state.fuel_level
        state, _ = sim.tick(state, 3.0)
        assert state.fuel_level <= previous


def test_speed_ceiling_is_configurable() -> None:
    route = _two_point_route()
    config = SimulationConfig(
        base_speed_kmh=200.0,
        speed_jitter_kmh=0.0,
        stochastic_stops=False,
        randomize_start=False,
        speed_ceiling_kmh=40.0,
    )
    sim = _simulator([route], config=config)
    state = sim.initial_state(Vehicle(vehicle_id="veh-1"), route, _START)
    for _ in range(10):
        state, _ = sim.tick(state, 3.0)
    assert state.speed_kmh == 40.0
