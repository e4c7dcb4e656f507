"""Latest-value snapshots of the real-time stream."""

from fleetsim.state.policy import should_accept_update
from fleetsim.state.store import SnapshotStore, VehicleSnapshot

__all__ = ["SnapshotStore", "VehicleSnapshot", "should_accept_update"]
