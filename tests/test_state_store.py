from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from fleetsim.models import AlertKind, AlertRecord, AlertSeverity, Coordinate, RealtimeUpdate, TelemetrySample
from fleetsim.realtime import DistributionHub
from fleetsim.state import SnapshotStore, should_accept_update


def _dt(seconds: float = 0.0) -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=seconds)


def _sample(seconds: float, *, latitude: float = 4.6, fuel: float = 80.0, vehicle_id: str = "veh-1") -> TelemetrySample:
    return TelemetrySample(
        vehicle_id=vehicle_id,
        timestamp=_dt(seconds),
        position=Coordinate(latitude=latitude, longitude=-74.08),
        speed_kmh=30.0,
        fuel_level=fuel,
    )


def _alert(vehicle_id: str, n: int) -> RealtimeUpdate:
    return RealtimeUpdate.alert_from(
        AlertRecord(
            id=f"a{n}",
            vehicle_id=vehicle_id,
            kind=AlertKind.SPEED,
            severity=AlertSeverity.LOW,
            message="fast",
            timestamp=_dt(n),
        )
    )


def test_policy_accepts_first_newer_and_skewed_updates() -> None:
    assert should_accept_update(cached_ts=None, incoming_ts=_dt(), skew_allowance_seconds=0.0)
    assert should_accept_update(cached_ts=_dt(10), incoming_ts=_dt(10), skew_allowance_seconds=0.0)
    assert should_accept_update(cached_ts=_dt(10), incoming_ts=_dt(8), skew_allowance_seconds=5.0)
    assert not should_accept_update(cached_ts=_dt(10), incoming_ts=_dt(8), skew_allowance_seconds=0.0)


def test_latest_location_and_sensor_are_tracked_independently() -> None:
    store = SnapshotStore(clock=lambda: _dt(100))
    assert store.apply(RealtimeUpdate.location_from(_sample(1, latitude=4.61)))
    assert store.apply(RealtimeUpdate.sensor_from(_sample(2, fuel=70.0)))

    location = store.latest_location("veh-1")
    sensor = store.latest_sensor("veh-1")
    assert location is not None and location.latitude == pytest.approx(4.61)
    assert sensor is not None and sensor.fuel_level == pytest.approx(70.0)

    snapshot = store.snapshot("veh-1")
    assert snapshot is not None
    assert snapshot.location_ts == _dt(1)
    assert snapshot.sensor_ts == _dt(2)
    assert snapshot.observed_at == _dt(100)


def test_stale_update_is_rejected() -> None:
    store = SnapshotStore()
    store.apply(RealtimeUpdate.location_from(_sample(10, latitude=4.62)))

    assert not store.apply(RealtimeUpdate.location_from(_sample(5, latitude=4.60)))
    location = store.latest_location("veh-1")
    assert location is not None and location.latitude == pytest.approx(4.62)


def test_skew_allowance_accepts_slightly_older_update_without_rewinding_timestamp() -> None:
    store = SnapshotStore(skew_allowance_seconds=5.0)
    store.apply(RealtimeUpdate.sensor_from(_sample(10, fuel=60.0)))

    assert store.apply(RealtimeUpdate.sensor_from(_sample(8, fuel=61.0)))
    snapshot = store.snapshot("veh-1")
    assert snapshot is not None
    assert snapshot.sensor is not None and snapshot.sensor.fuel_level == pytest.approx(61.0)
    assert snapshot.sensor_ts == _dt(10)


def test_same_updates_in_any_order_converge() -> None:
    updates = [RealtimeUpdate.location_from(_sample(s, latitude=4.6 + s / 1000)) for s in (1, 2, 3)]
    forward, backward = SnapshotStore(), SnapshotStore()
    for update in updates:
        forward.apply(update)
    for update in reversed(updates):
        backward.apply(update)

    assert forward.latest_location("veh-1") == backward.latest_location("veh-1")


def test_alert_log_is_bounded_and_filterable() -> None:
    store = SnapshotStore(max_alerts=3)
    for n in range(5):
        store.apply(_alert("veh-1" if n % 2 == 0 else "veh-2", n))

    assert [a.id for a in store.recent_alerts()] == ["a2", "a3", "a4"]
    assert [a.id for a in store.recent_alerts("veh-2")] == ["a3"]
    assert store.vehicle_ids() == []


def test_unknown_vehicle_reads_are_empty() -> None:
    store = SnapshotStore()
    assert store.latest_location("nope") is None
    assert store.latest_sensor("nope") is None
    assert store.snapshot("nope") is None


def test_snapshot_is_a_copy() -> None:
    store = SnapshotStore()
    store.apply(RealtimeUpdate.location_from(_sample(1)))
    snapshot = store.snapshot("veh-1")
    assert snapshot is not None
    snapshot.location = None
    assert store.latest_location("veh-1") is not None


@pytest.mark.asyncio
async def test_consume_drains_hub_subscription_until_closed() -> None:
    hub = DistributionHub()
    store = SnapshotStore()
    sub = hub.subscribe()
    consumer = asyncio.create_task(store.consume(sub))
    await asyncio.sleep(0)

    hub.publish(RealtimeUpdate.location_from(_sample(1, vehicle_id="veh-b")))
    hub.publish(RealtimeUpdate.location_from(_sample(2, vehicle_id="veh-a")))
    async with asyncio.timeout(1.0):
        while len(store.vehicle_ids()) < 2:
            await asyncio.sleep(0.005)
    hub.unsubscribe(sub)

    assert await asyncio.wait_for(consumer, 1.0) == 2
    assert store.vehicle_ids() == ["veh-a", "veh-b"]
