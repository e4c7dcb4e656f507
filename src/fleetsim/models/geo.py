"""Coordinate and route models."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator

from fleetsim import geodesy
from fleetsim.exceptions import RouteValidationError
from fleetsim.models._base import FleetBaseModel


class Coordinate(FleetBaseModel):
    """A point on the globe in decimal degrees.

    Parameters
    ----------
    latitude : float
        Degrees north, within ``[-90, 90]``.
    longitude : float
        Degrees east, within ``[-180, 180]``.
    """

    latitude: float = Field(
        ge=-90.0,
        le=90.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("latitude", "lat"),
    )
    longitude: float = Field(
        ge=-180.0,
        le=180.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("longitude", "lng", "lon"),
    )

    def lerp(self, other: Coordinate, fraction: float) -> Coordinate:
        """Linear interpolation in lat/lon space (``0`` is self, ``1`` is other)."""
        return Coordinate(
            latitude=self.latitude + (other.latitude - self.latitude) * fraction,
            longitude=self.longitude + (other.longitude - self.longitude) * fraction,
        )


def _coerce_point(value: Any) -> Any:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        return {"latitude": value[0], "longitude": value[1]}
    return value


def _distance_to_segment_km(point: Coordinate, start: Coordinate, end: Coordinate) -> float:
    # Local equirectangular projection; accurate for city-scale segments.
    km_per_deg_lat = math.pi * 6371.0 / 180.0
    km_per_deg_lon = km_per_deg_lat * math.cos(math.radians(start.latitude))
    ex = (end.longitude - start.longitude) * km_per_deg_lon
    ey = (end.latitude - start.latitude) * km_per_deg_lat
    px = (point.longitude - start.longitude) * km_per_deg_lon
    py = (point.latitude - start.latitude) * km_per_deg_lat
    seg_sq = ex * ex + ey * ey
    t = 0.0 if seg_sq == 0 else max(0.0, min(1.0, (px * ex + py * ey) / seg_sq))
    return math.hypot(px - t * ex, py - t * ey)


class Route(FleetBaseModel):
    """A named road polyline, immutable once loaded.

    Vehicles traverse routes back and forth, so the waypoint order only
    fixes the shape, not the travel direction.
    """

    name: str = Field(min_length=1)
    waypoints: tuple[Coordinate, ...] = Field(min_length=2)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("waypoints", mode="before")
    @classmethod
    def _coerce_waypoints(cls, value: Any) -> Any:
        if isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping)):
            return tuple(_coerce_point(item) for item in value)
        return value

    @classmethod
    def from_points(cls, name: str, points: Iterable[Any]) -> Route:
        """Build a route from ``{latitude, longitude}`` mappings or ``(lat, lon)`` pairs.

        Raises
        ------
        RouteValidationError
            When the name is empty, fewer than two points are given or any
            point is out of range.
        """
        try:
            return cls(name=name, waypoints=tuple(points))
        except ValidationError as exc:
            raise RouteValidationError(f"Invalid route {name!r}: {exc}", route_name=name) from exc

    def segment_length_km(self, index: int, direction: int = 1) -> float:
        """Length of the segment from waypoint *index* towards ``index + direction``."""
        return geodesy.distance_km(self.waypoints[index], self.waypoints[index + direction])

    @property
    def length_km(self) -> float:
        return sum(self.segment_length_km(i) for i in range(len(self.waypoints) - 1))

    def distance_to_km(self, point: Coordinate) -> float:
        """Shortest distance from *point* to the polyline."""
        return min(
            _distance_to_segment_km(point, self.waypoints[i], self.waypoints[i + 1])
            for i in range(len(self.waypoints) - 1)
        )

    def contains(self, point: Coordinate, tolerance_km: float = 0.005) -> bool:
        return self.distance_to_km(point) <= tolerance_km
