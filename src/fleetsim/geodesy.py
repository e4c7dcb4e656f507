"""Great-circle helpers.

Functions accept any object exposing ``latitude`` and ``longitude`` in
degrees (usually :class:`fleetsim.models.geo.Coordinate`).
"""

from __future__ import annotations

import math
from typing import Protocol

from fleetsim._constants import EARTH_RADIUS_KM


class LatLon(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


def distance_km(a: LatLon, b: LatLon) -> float:
    """Haversine distance between *a* and *b* in kilometres.

    Exactly ``0.0`` for identical points and symmetric in its arguments.
    """
    if a.latitude == b.latitude and a.longitude == b.longitude:
        return 0.0
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Rounding can push h marginally outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing_degrees(a: LatLon, b: LatLon) -> float:
    """Initial great-circle bearing from *a* to *b*, normalized to ``[0, 360)``.

    0 is north, 90 east. Returns ``0.0`` when the points coincide.
    """
    if a.latitude == b.latitude and a.longitude == b.longitude:
        return 0.0
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    x = math.sin(d_lon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    bearing = math.degrees(math.atan2(x, y)) % 360.0
    # -0.0 % 360 and tiny negatives can round up to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing
