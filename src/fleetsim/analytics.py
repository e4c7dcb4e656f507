"""Trip analytics over a vehicle's telemetry samples."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from fleetsim import _constants as C
from fleetsim import geodesy
from fleetsim.models._base import FleetBaseModel
from fleetsim.models.telemetry import TelemetrySample


class TripSummary(FleetBaseModel):
    """Aggregate figures of one trip.

    Speeds are averaged over moving samples only (speed > 0). ``efficiency``
    is kilometres per fuel percentage point, ``0`` when no fuel was used.
    """

    vehicle_id: str
    start_time: datetime
    end_time: datetime
    sample_count: int
    total_distance_km: float
    duration_minutes: float
    average_speed_kmh: float
    max_speed_kmh: float
    min_speed_kmh: float
    fuel_consumed: float
    efficiency: float
    stops: int
    idle_minutes: float


class TripSegment(FleetBaseModel):
    start: TelemetrySample
    end: TelemetrySample
    distance_km: float
    duration_minutes: float
    average_speed_kmh: float
    fuel_consumed: float


def _minutes(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def _sorted(samples: Iterable[TelemetrySample]) -> list[TelemetrySample]:
    ordered = sorted(samples, key=lambda s: s.timestamp)
    if not ordered:
        raise ValueError("No telemetry samples provided")
    return ordered


def count_stops(samples: list[TelemetrySample], threshold_kmh: float = C.IDLE_SPEED_KMH) -> int:
    """Number of transitions into a stopped state (speed at or below *threshold_kmh*)."""
    stops = 0
    stopped = False
    for sample in samples:
        if sample.speed_kmh <= threshold_kmh and not stopped:
            stops += 1
            stopped = True
        elif sample.speed_kmh > threshold_kmh:
            stopped = False
    return stops


def idle_minutes(samples: list[TelemetrySample], threshold_kmh: float = C.IDLE_SPEED_KMH) -> float:
    """Minutes spent at or below *threshold_kmh*, closed by the next moving sample.

    An idle stretch still open at the end of the trip is not counted.
    """
    total = 0.0
    idle_since: datetime | None = None
    for sample in samples:
        if sample.speed_kmh <= threshold_kmh:
            if idle_since is None:
                idle_since = sample.timestamp
        elif idle_since is not None:
            total += _minutes(idle_since, sample.timestamp)
            idle_since = None
    return total


def summarize_trip(samples: Iterable[TelemetrySample]) -> TripSummary:
    """Summarize a trip from its samples (any order, one vehicle).

    Raises
    ------
    ValueError
        No samples were given.
    """
    ordered = _sorted(samples)
    first, last = ordered[0], ordered[-1]

    distance = sum(
        geodesy.distance_km(prev.position, cur.position) for prev, cur in zip(ordered, ordered[1:])
    )
    moving = [s.speed_kmh for s in ordered if s.speed_kmh > 0]
    fuel_consumed = max(0.0, first.fuel_level - last.fuel_level)

    return TripSummary(
        vehicle_id=first.vehicle_id,
        start_time=first.timestamp,
        end_time=last.timestamp,
        sample_count=len(ordered),
        total_distance_km=distance,
        duration_minutes=_minutes(first.timestamp, last.timestamp),
        average_speed_kmh=sum(moving) / len(moving) if moving else 0.0,
        max_speed_kmh=max(moving, default=0.0),
        min_speed_kmh=min(moving, default=0.0),
        fuel_consumed=fuel_consumed,
        efficiency=distance / fuel_consumed if distance > 0 and fuel_consumed > 0 else 0.0,
        stops=count_stops(ordered),
        idle_minutes=idle_minutes(ordered),
    )


def split_into_segments(
    samples: Iterable[TelemetrySample],
    max_segment_minutes: float = 30.0,
) -> list[TripSegment]:
    """Cut a trip into consecutive segments of at most *max_segment_minutes*.

    The last sample always closes a segment. Segment distance is the
    straight-line distance between its end points.
    """
    ordered = _sorted(samples)
    segments: list[TripSegment] = []
    if len(ordered) < 2:
        return segments

    start_index = 0
    for index in range(1, len(ordered)):
        start, current = ordered[start_index], ordered[index]
        if _minutes(start.timestamp, current.timestamp) < max_segment_minutes and index != len(ordered) - 1:
            continue
        distance = geodesy.distance_km(start.position, current.position)
        duration = _minutes(start.timestamp, current.timestamp)
        segments.append(
            TripSegment(
                start=start,
                end=current,
                distance_km=distance,
                duration_minutes=duration,
                average_speed_kmh=distance / duration * 60.0 if duration > 0 else 0.0,
                fuel_consumed=start.fuel_level - current.fuel_level,
            )
        )
        start_index = index
    return segments
