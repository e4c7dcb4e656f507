"""Custom exception hierarchy for fleetsim."""

from __future__ import annotations


class FleetSimError(Exception):
    """Base exception for all fleetsim errors."""


class FleetSimConfigError(FleetSimError):
    """Invalid or missing configuration."""


class RouteValidationError(FleetSimError, ValueError):
    """A route or route catalog failed validation at load time.

    Raised for routes with fewer than two waypoints, empty names,
    duplicate names within a catalog and lookups of unknown routes.
    Never raised from the simulation tick path.
    """

    def __init__(self, message: str, *, route_name: str = "") -> None:
        self.route_name = route_name
        super().__init__(message)


class FleetSimTransportError(FleetSimError):
    """Real-time transport failure (connect, send, receive or close)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        close_code: int | None = None,
    ) -> None:
        self.url = url
        self.close_code = close_code
        super().__init__(message)


class EnvelopeError(FleetSimError):
    """A wire envelope could not be decoded into a realtime update."""


class SubscriptionClosedError(FleetSimError):
    """Read from a subscription that was unsubscribed."""
