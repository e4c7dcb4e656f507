"""Fleet member descriptor."""

from __future__ import annotations

from pydantic import Field

from fleetsim._constants import DEFAULT_AVERAGE_CONSUMPTION_L_PER_100KM, DEFAULT_FUEL_CAPACITY_L
from fleetsim.models._base import FleetBaseModel, FleetEnum, UtcDatetime
from fleetsim.models.behavior import BehaviorType


class VehicleType(FleetEnum):
    CAR = "car"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"


class Vehicle(FleetBaseModel):
    """A vehicle handed to :meth:`SimulationEngine.start`.

    Parameters
    ----------
    vehicle_id : str
        Unique identifier, used as the key of every per-vehicle registry.
    name, plate : str
        Display name and licence plate (used in alert messages).
    vehicle_type : VehicleType
        Car, truck or motorcycle.
    fuel_capacity_l : float
        Tank capacity in litres.
    average_consumption_l_per_100km : float
        Centre of the simulated instantaneous consumption reading.
    last_maintenance : datetime or None
        Last service date. Enables maintenance alerts when set.
    route_name : str or None
        Route to drive. ``None`` assigns catalog routes round-robin.
    fuel_level : float or None
        Starting fuel percentage. ``None`` lets the simulator decide.
    behavior : BehaviorType or None
        Starting driver behavior. ``None`` lets the simulator decide.
    """

    vehicle_id: str = Field(min_length=1)
    name: str = ""
    plate: str = ""
    vehicle_type: VehicleType = VehicleType.CAR
    fuel_capacity_l: float = Field(default=DEFAULT_FUEL_CAPACITY_L, gt=0)
    average_consumption_l_per_100km: float = Field(default=DEFAULT_AVERAGE_CONSUMPTION_L_PER_100KM, gt=0)
    last_maintenance: UtcDatetime | None = None
    route_name: str | None = None
    fuel_level: float | None = Field(default=None, ge=0, le=100)
    behavior: BehaviorType | None = None

    @property
    def display_name(self) -> str:
        return self.plate or self.name or self.vehicle_id
