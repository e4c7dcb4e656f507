from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from fleetsim.analytics import count_stops, idle_minutes, split_into_segments, summarize_trip
from fleetsim.models import Coordinate, TelemetrySample

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _sample(minute: float, speed: float, fuel: float, latitude: float) -> TelemetrySample:
    return TelemetrySample(
        vehicle_id="veh-1",
        timestamp=_T0 + timedelta(minutes=minute),
        position=Coordinate(latitude=latitude, longitude=-74.08),
        speed_kmh=speed,
        fuel_level=fuel,
    )


def _trip() -> list[TelemetrySample]:
    return [
        _sample(0, 0.0, 80.0, 4.600),
        _sample(10, 30.0, 79.0, 4.610),
        _sample(20, 3.0, 78.5, 4.610),
        _sample(30, 40.0, 78.0, 4.620),
        _sample(40, 50.0, 77.0, 4.630),
    ]


def test_summary_figures() -> None:
    summary = summarize_trip(reversed(_trip()))

    assert summary.vehicle_id == "veh-1"
    assert summary.start_time == _T0
    assert summary.sample_count == 5
    assert summary.duration_minutes == pytest.approx(40.0)
    assert summary.total_distance_km == pytest.approx(3.336, abs=0.01)
    assert summary.average_speed_kmh == pytest.approx((30 + 3 + 40 + 50) / 4)
    assert summary.max_speed_kmh == 50.0
    assert summary.min_speed_kmh == 3.0
    assert summary.fuel_consumed == pytest.approx(3.0)
    assert summary.efficiency == pytest.approx(summary.total_distance_km / 3.0)
    assert summary.stops == 2
    assert summary.idle_minutes == pytest.approx(20.0)


def test_summary_of_parked_vehicle() -> None:
    summary = summarize_trip([_sample(0, 0.0, 50.0, 4.6), _sample(5, 0.0, 50.0, 4.6)])

    assert summary.total_distance_km == 0.0
    assert summary.average_speed_kmh == 0.0
    assert summary.efficiency == 0.0
    assert summary.stops == 1
    assert summary.idle_minutes == 0.0


def test_summary_requires_samples() -> None:
    with pytest.raises(ValueError, match="No telemetry"):
        summarize_trip([])


def test_stops_count_transitions_into_stopped_state() -> None:
    speeds = [0.0, 0.0, 20.0, 4.0, 30.0, 30.0, 1.0]
    samples = [_sample(i, s, 50.0, 4.6) for i, s in enumerate(speeds)]
    assert count_stops(samples) == 3
    assert idle_minutes(samples) == pytest.approx(3.0)


def test_segments_split_on_duration() -> None:
    segments = split_into_segments(_trip(), max_segment_minutes=20)

    assert [(s.start.timestamp, s.end.timestamp) for s in segments] == [
        (_T0, _T0 + timedelta(minutes=20)),
        (_T0 + timedelta(minutes=20), _T0 + timedelta(minutes=40)),
    ]
    assert segments[0].fuel_consumed == pytest.approx(1.5)
    assert segments[1].average_speed_kmh == pytest.approx(segments[1].distance_km / 20 * 60)


def test_single_sample_has_no_segments() -> None:
    assert split_into_segments([_sample(0, 10.0, 50.0, 4.6)]) == []
