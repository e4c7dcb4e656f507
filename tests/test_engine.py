from __future__ import annotations

import asyncio
import random
from datetime import UTC, datetime

import pytest

from fleetsim.config import FleetSimConfig, HubConfig, SimulationConfig
from fleetsim.exceptions import RouteValidationError
from fleetsim.models import RealtimeUpdate, Vehicle
from fleetsim.realtime import DistributionHub, SubscriptionFilter
from fleetsim.routes import RouteCatalog
from fleetsim.simulation import SimulationEngine

_START = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _config(tick_interval: float = 3.0) -> FleetSimConfig:
    return FleetSimConfig(
        simulation=SimulationConfig(
            speed_jitter_kmh=0.0,
            stochastic_stops=False,
            reroute_probability=0.0,
            randomize_start=False,
            tick_interval=tick_interval,
        ),
        hub=HubConfig(subscriber_queue_size=0),
    )


def _engine(hub: DistributionHub, tick_interval: float = 3.0, seed: int = 42) -> SimulationEngine:
    return SimulationEngine(
        hub,
        catalog=RouteCatalog.default(),
        config=_config(tick_interval),
        rng=random.Random(seed),
        clock=lambda: _START,
    )


def _fleet(catalog: RouteCatalog, count: int = 3) -> list[Vehicle]:
    names = catalog.names()
    return [Vehicle(vehicle_id=f"veh-{i}", route_name=names[i]) for i in range(count)]


def _drain(sub) -> list[RealtimeUpdate]:  # type: ignore[no-untyped-def]
    return [sub.get_nowait() for _ in range(len(sub))]


@pytest.mark.asyncio
async def test_manual_ticks_keep_vehicles_on_their_routes() -> None:
    hub = DistributionHub(HubConfig())
    engine = _engine(hub)
    fleet = _fleet(engine.catalog)

    assert await engine.start(fleet, autotick=False)
    for _ in range(30):
        samples = engine.step(3.0)
        assert len(samples) == 3

    states = engine.states()
    assert sorted(states) == ["veh-0", "veh-1", "veh-2"]
    routes = {state.route.name for state in states.values()}
    assert len(routes) == 3
    for state in states.values():
        assert state.route.contains(state.position)
        assert state.fuel_level < 100.0
        assert 0.0 <= state.speed_kmh <= 60.0
    await engine.stop()


@pytest.mark.asyncio
async def test_each_tick_publishes_location_then_sensor_per_vehicle() -> None:
    hub = DistributionHub(HubConfig())
    sub = hub.subscribe()
    engine = _engine(hub)
    await engine.start(_fleet(engine.catalog, 2), autotick=False)

    engine.step(3.0)
    updates = [u for u in _drain(sub) if not u.is_alert]

    assert [(u.vehicle_id, u.payload_type) for u in updates] == [
        ("veh-0", "location"),
        ("veh-0", "sensor"),
        ("veh-1", "location"),
        ("veh-1", "sensor"),
    ]
    assert engine.status().last_update == updates[-1].timestamp
    await engine.stop()


@pytest.mark.asyncio
async def test_low_fuel_vehicle_raises_fuel_alerts() -> None:
    hub = DistributionHub(HubConfig())
    fuel_alerts = hub.subscribe(SubscriptionFilter.FUEL_ALERT)
    engine = _engine(hub)
    vehicle = Vehicle(vehicle_id="veh-low", route_name=engine.catalog.names()[0], fuel_level=5.0)
    await engine.start([vehicle], autotick=False)

    engine.step(3.0)

    alerts = _drain(fuel_alerts)
    assert alerts
    assert all(update.vehicle_id == "veh-low" for update in alerts)
    await engine.stop()


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent() -> None:
    hub = DistributionHub(HubConfig())
    engine = _engine(hub, tick_interval=0.01)
    fleet = _fleet(engine.catalog, 1)

    assert await engine.start(fleet)
    assert not await engine.start(fleet)
    assert engine.is_running
    assert engine.status().vehicle_count == 1

    assert await engine.stop()
    assert not await engine.stop()
    status = engine.status()
    assert not status.is_running
    assert status.vehicle_count == 0
    assert engine.states() == {}
    assert engine.predictions() == {}


@pytest.mark.asyncio
async def test_timer_ticks_until_stopped_and_never_after() -> None:
    hub = DistributionHub(HubConfig())
    sub = hub.subscribe(SubscriptionFilter.LOCATION)
    engine = _engine(hub, tick_interval=0.01)
    await engine.start(_fleet(engine.catalog, 2))

    async with asyncio.timeout(2.0):
        while len(sub) < 6:
            await asyncio.sleep(0.01)
    await engine.stop()

    published = len(_drain(sub))
    await asyncio.sleep(0.05)
    assert published >= 6
    assert len(sub) == 0


@pytest.mark.asyncio
async def test_round_robin_assignment_without_route_name() -> None:
    hub = DistributionHub(HubConfig())
    engine = _engine(hub)
    fleet = [Vehicle(vehicle_id=f"veh-{i}") for i in range(len(engine.catalog) + 1)]
    await engine.start(fleet, autotick=False)

    states = engine.states()
    names = engine.catalog.names()
    assert states["veh-0"].route.name == names[0]
    assert states[f"veh-{len(names)}"].route.name == names[0]
    await engine.stop()


@pytest.mark.asyncio
async def test_start_rejects_duplicate_ids_and_unknown_routes() -> None:
    hub = DistributionHub(HubConfig())
    engine = _engine(hub)

    with pytest.raises(ValueError, match="Duplicate"):
        await engine.start([Vehicle(vehicle_id="a"), Vehicle(vehicle_id="a")])
    with pytest.raises(RouteValidationError):
        await engine.start([Vehicle(vehicle_id="a", route_name="nowhere")])
    assert not engine.is_running


@pytest.mark.asyncio
async def test_seeded_runs_are_reproducible() -> None:
    async def run(seed: int) -> list[tuple[float, float, float]]:
        hub = DistributionHub(HubConfig())
        engine = SimulationEngine(
            hub,
            config=FleetSimConfig(),
            rng=random.Random(seed),
            clock=lambda: _START,
        )
        await engine.start(_fleet(engine.catalog), autotick=False)
        samples = []
        for _ in range(10):
            samples.extend(engine.step(3.0))
        await engine.stop()
        return [(s.position.latitude, s.position.longitude, s.fuel_level) for s in samples]

    assert await run(7) == await run(7)
