"""Driver behavior profiles."""

from __future__ import annotations

import random

from pydantic import Field

from fleetsim.models._base import FleetBaseModel, FleetEnum


class BehaviorType(FleetEnum):
    AGGRESSIVE = "aggressive"
    NORMAL = "normal"
    CAUTIOUS = "cautious"


class BehaviorProfile(FleetBaseModel):
    """Driving-style parameters applied on every tick.

    Parameters
    ----------
    behavior : BehaviorType
        Profile name.
    speed_multiplier : float
        Factor applied to the base cruise speed.
    stop_probability : float
        Per-tick probability of a traffic/signal stop.
    lane_change_probability : float
        Per-tick probability of a lane change. Carried for consumers;
        the movement model follows the route centreline.
    """

    behavior: BehaviorType
    speed_multiplier: float = Field(gt=0)
    stop_probability: float = Field(ge=0, le=1)
    lane_change_probability: float = Field(ge=0, le=1)

    @classmethod
    def of(cls, behavior: BehaviorType | str) -> BehaviorProfile:
        """Return the built-in profile for *behavior*."""
        return BEHAVIOR_PROFILES[BehaviorType(behavior)]

    @classmethod
    def random(cls, rng: random.Random) -> BehaviorProfile:
        return rng.choice(list(BEHAVIOR_PROFILES.values()))


BEHAVIOR_PROFILES: dict[BehaviorType, BehaviorProfile] = {
    BehaviorType.AGGRESSIVE: BehaviorProfile(
        behavior=BehaviorType.AGGRESSIVE,
        speed_multiplier=1.3,
        stop_probability=0.05,
        lane_change_probability=0.3,
    ),
    BehaviorType.NORMAL: BehaviorProfile(
        behavior=BehaviorType.NORMAL,
        speed_multiplier=1.0,
        stop_probability=0.15,
        lane_change_probability=0.1,
    ),
    BehaviorType.CAUTIOUS: BehaviorProfile(
        behavior=BehaviorType.CAUTIOUS,
        speed_multiplier=0.7,
        stop_probability=0.25,
        lane_change_probability=0.05,
    ),
}
