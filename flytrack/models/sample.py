"""
Sample: one fix of a derived track, raw and derived fields together.
"""

import math
from dataclasses import dataclass, fields


@dataclass(frozen=True)
class Sample:
    """
    A single derived fix.

    Velocities are NED (vel_d down positive). x/y/vx/vy are east/north and
    wind-adjusted when the track was derived with wind adjustment.
    """

    # Raw fix
    timestamp: float      # epoch ms
    lat: float            # degrees, NaN when dead-reckoned
    lon: float
    h_msl: float          # m
    vel_n: float          # m/s
    vel_e: float
    vel_d: float
    h_acc: float
    v_acc: float
    s_acc: float
    num_sv: int
    has_geodetic: bool

    # Derived
    t: float              # s since track start
    z: float              # m above ground reference
    ax: float             # m/s^2 along track
    ay: float             # m/s^2 across track, positive to the right
    az: float             # m/s^2 down
    amag: float
    x: float              # m east of exit
    y: float              # m north of exit
    vx: float             # m/s east
    vy: float             # m/s north
    dist_2d: float        # m
    dist_3d: float
    heading: float        # deg, unwrapped
    theta: float          # deg relative to reference course
    c_acc: float
    curv: float           # deg/s
    accel: float          # m/s^2
    omega: float          # deg/s
    lift: float
    drag: float

    @property
    def elevation(self) -> float:
        return self.z

    @property
    def course(self) -> float:
        return self.theta

    @property
    def horizontal_speed(self) -> float:
        return math.sqrt(self.vx * self.vx + self.vy * self.vy)

    @property
    def vertical_speed(self) -> float:
        return self.vel_d

    @property
    def total_speed(self) -> float:
        return math.sqrt(self.vx * self.vx + self.vy * self.vy + self.vel_d * self.vel_d)

    @property
    def dive_angle(self) -> float:
        """Angle of the velocity below the horizon, degrees."""
        return math.degrees(math.atan2(self.vel_d, self.horizontal_speed))

    @property
    def glide_ratio(self) -> float:
        if self.vel_d == 0:
            return math.nan
        return self.horizontal_speed / self.vel_d

    @classmethod
    def interpolate(cls, p1: "Sample", p2: "Sample", a: float) -> "Sample":
        """
        Linear blend of two samples with weight a (0 -> p1, 1 -> p2).

        Satellite count and the geodetic flag snap to the nearer sample.
        """
        values = {}
        for f in fields(cls):
            v1 = getattr(p1, f.name)
            v2 = getattr(p2, f.name)
            if f.name in ("num_sv", "has_geodetic"):
                values[f.name] = v1 if a < 0.5 else v2
            else:
                values[f.name] = v1 + a * (v2 - v1)
        return cls(**values)


SAMPLE_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(Sample))
