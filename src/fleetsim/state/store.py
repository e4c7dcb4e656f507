"""In-memory snapshot store fed by the distribution hub.

External readers (dashboards, caches) never join the simulation tick; they
read the latest location and sensor payload per vehicle from here. The store
has a single writer, either :meth:`SnapshotStore.apply` called directly or
the :meth:`SnapshotStore.consume` task draining a hub subscription.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from fleetsim.models._base import utcnow
from fleetsim.models.alert import AlertRecord
from fleetsim.models.realtime import (
    AlertPayload,
    LocationPayload,
    RealtimeUpdate,
    SensorPayload,
)
from fleetsim.realtime.subscription import Subscription
from fleetsim.state.policy import should_accept_update

_logger = logging.getLogger(__name__)


class VehicleSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vehicle_id: str
    location: LocationPayload | None = None
    location_ts: datetime | None = None
    sensor: SensorPayload | None = None
    sensor_ts: datetime | None = None
    observed_at: datetime | None = None


class SnapshotStore:
    """Latest location/sensor payload per vehicle plus a bounded alert log.

    Given the same sequence of updates the store always ends in the same
    state: a location or sensor update older than the cached one (beyond
    ``skew_allowance_seconds``) is rejected.
    """

    def __init__(
        self,
        *,
        max_alerts: int = 200,
        skew_allowance_seconds: float = 0.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._clock = clock
        self._skew_allowance_seconds = skew_allowance_seconds
        self._vehicles: dict[str, VehicleSnapshot] = {}
        self._alerts: deque[AlertRecord] = deque(maxlen=max_alerts)

    def _vehicle(self, vehicle_id: str) -> VehicleSnapshot:
        snapshot = self._vehicles.get(vehicle_id)
        if snapshot is None:
            snapshot = VehicleSnapshot(vehicle_id=vehicle_id)
            self._vehicles[vehicle_id] = snapshot
        return snapshot

    def apply(self, update: RealtimeUpdate, observed_at: datetime | None = None) -> bool:
        """Apply one update. Returns ``False`` when it was rejected as stale."""
        payload = update.payload
        if isinstance(payload, AlertPayload):
            self._alerts.append(payload.alert)
            return True

        snapshot = self._vehicle(update.vehicle_id)
        observed = observed_at or self._clock()
        if isinstance(payload, LocationPayload):
            if not should_accept_update(
                cached_ts=snapshot.location_ts,
                incoming_ts=update.timestamp,
                skew_allowance_seconds=self._skew_allowance_seconds,
            ):
                _logger.debug("Rejecting stale location vehicle=%s ts=%s", update.vehicle_id, update.timestamp)
                return False
            snapshot.location = payload
            # Never move the cached timestamp backwards.
            snapshot.location_ts = max(snapshot.location_ts or update.timestamp, update.timestamp)
        elif isinstance(payload, SensorPayload):
            if not should_accept_update(
                cached_ts=snapshot.sensor_ts,
                incoming_ts=update.timestamp,
                skew_allowance_seconds=self._skew_allowance_seconds,
            ):
                _logger.debug("Rejecting stale sensor data vehicle=%s ts=%s", update.vehicle_id, update.timestamp)
                return False
            snapshot.sensor = payload
            snapshot.sensor_ts = max(snapshot.sensor_ts or update.timestamp, update.timestamp)
        snapshot.observed_at = observed
        return True

    def latest_location(self, vehicle_id: str) -> LocationPayload | None:
        snapshot = self._vehicles.get(vehicle_id)
        return snapshot.location if snapshot is not None else None

    def latest_sensor(self, vehicle_id: str) -> SensorPayload | None:
        snapshot = self._vehicles.get(vehicle_id)
        return snapshot.sensor if snapshot is not None else None

    def snapshot(self, vehicle_id: str) -> VehicleSnapshot | None:
        snapshot = self._vehicles.get(vehicle_id)
        return snapshot.model_copy() if snapshot is not None else None

    def recent_alerts(self, vehicle_id: str | None = None) -> list[AlertRecord]:
        """Alerts oldest first, optionally restricted to one vehicle."""
        if vehicle_id is None:
            return list(self._alerts)
        return [alert for alert in self._alerts if alert.vehicle_id == vehicle_id]

    def vehicle_ids(self) -> list[str]:
        return sorted(self._vehicles)

    async def consume(self, subscription: Subscription) -> int:
        """Apply every update from *subscription* until it is closed.

        Returns the number of updates applied.
        """
        applied = 0
        async for update in subscription:
            if self.apply(update):
                applied += 1
        return applied
