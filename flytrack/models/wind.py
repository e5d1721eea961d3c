"""
Constant wind vector and its polar form.
"""

import math
from dataclasses import dataclass
from typing import Optional

from flytrack.config import TrackOptions


@dataclass(frozen=True)
class WindSpeedDirection:
    """Wind as speed (m/s) and the direction it blows from (deg, [0, 360))."""

    speed: float
    direction: float


@dataclass(frozen=True)
class Wind:
    """Wind velocity in m/s; components point where the air moves to."""

    east: float
    north: float

    def as_polar(self) -> WindSpeedDirection:
        speed = math.hypot(self.east, self.north)
        if speed == 0:
            return WindSpeedDirection(speed=0.0, direction=0.0)
        direction = math.degrees(math.atan2(-self.east, -self.north))
        if direction < 0:
            direction += 360
        return WindSpeedDirection(speed=speed, direction=direction)


def resolve_wind(cached: Optional[Wind], options: TrackOptions) -> Wind:
    """Cached wind when one has been resolved, else the manual setting."""
    if cached is not None:
        return cached
    return Wind(east=options.wind_e, north=options.wind_n)
