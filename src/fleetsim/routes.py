"""Route catalog.

A fixed, ordered set of named road polylines. Catalogs are validated when
they are built; once loaded they never change, so the simulator can hold
references to their routes without copying.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from fleetsim.exceptions import RouteValidationError
from fleetsim.models.geo import Route

# Main Bogotá corridors as (latitude, longitude) waypoints.
_DEFAULT_ROUTES: dict[str, list[tuple[float, float]]] = {
    "carrera-7": [
        (4.6097100, -74.0817500),
        (4.6112000, -74.0815000),
        (4.6127000, -74.0812500),
        (4.6142000, -74.0810000),
        (4.6157000, -74.0807500),
        (4.6172000, -74.0805000),
        (4.6187000, -74.0802500),
        (4.6202000, -74.0800000),
    ],
    "calle-80": [
        (4.6000000, -74.0900000),
        (4.6010000, -74.0880000),
        (4.6020000, -74.0860000),
        (4.6030000, -74.0840000),
        (4.6040000, -74.0820000),
        (4.6050000, -74.0800000),
        (4.6060000, -74.0780000),
    ],
    "avenida-caracas": [
        (4.6080000, -74.0880000),
        (4.6100000, -74.0860000),
        (4.6120000, -74.0840000),
        (4.6140000, -74.0820000),
        (4.6160000, -74.0800000),
        (4.6180000, -74.0780000),
        (4.6200000, -74.0760000),
    ],
    "calle-100": [
        (4.6180000, -74.0920000),
        (4.6190000, -74.0900000),
        (4.6200000, -74.0880000),
        (4.6210000, -74.0860000),
        (4.6220000, -74.0840000),
        (4.6230000, -74.0820000),
        (4.6240000, -74.0800000),
    ],
    "diagonal-26": [
        (4.6050000, -74.0850000),
        (4.6070000, -74.0830000),
        (4.6090000, -74.0810000),
        (4.6110000, -74.0790000),
        (4.6130000, -74.0770000),
        (4.6150000, -74.0750000),
    ],
    "carrera-15": [
        (4.6000000, -74.0820000),
        (4.6020000, -74.0815000),
        (4.6040000, -74.0810000),
        (4.6060000, -74.0805000),
        (4.6080000, -74.0800000),
        (4.6100000, -74.0795000),
        (4.6120000, -74.0790000),
    ],
}


class RouteCatalog:
    """Ordered, name-unique collection of :class:`Route` objects."""

    def __init__(self, routes: Iterable[Route]) -> None:
        ordered: dict[str, Route] = {}
        for route in routes:
            if route.name in ordered:
                raise RouteValidationError(f"Duplicate route name {route.name!r}", route_name=route.name)
            ordered[route.name] = route
        if not ordered:
            raise RouteValidationError("Route catalog must contain at least one route")
        self._routes = ordered
        self._order: tuple[Route, ...] = tuple(ordered.values())

    @classmethod
    def from_mapping(cls, routes: Mapping[str, Iterable[Any]]) -> RouteCatalog:
        """Load a catalog from ``{name: [points...]}``.

        Points may be ``{"latitude": .., "longitude": ..}`` mappings or
        ``(lat, lon)`` pairs.
        """
        return cls(Route.from_points(name, points) for name, points in routes.items())

    @classmethod
    def default(cls) -> RouteCatalog:
        return cls.from_mapping(_DEFAULT_ROUTES)

    def get(self, name: str) -> Route:
        try:
            return self._routes[name]
        except KeyError:
            raise RouteValidationError(f"Unknown route {name!r}", route_name=name) from None

    def names(self) -> list[str]:
        return list(self._routes)

    def for_index(self, index: int) -> Route:
        """Round-robin assignment used when a vehicle names no route."""
        return self._order[index % len(self._order)]

    def choose(self, rng: random.Random) -> Route:
        return rng.choice(self._order)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def __iter__(self) -> Iterator[Route]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)
