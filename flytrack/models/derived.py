"""
Pipeline stage results and the derived track.

Each stage of the pipeline returns one of the frozen results below. Later
stages take the results they depend on as arguments, so a stage cannot read a
field before the stage that owns it has produced it.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from flytrack.models.raw import RawSeries
from flytrack.models.sample import SAMPLE_FIELDS, Sample
from flytrack.models.wind import Wind
from flytrack.utils import interpolation


@dataclass(frozen=True)
class TimeAxis:
    """Stage 1: seconds since the first fix."""

    t: NDArray[np.float64]


@dataclass(frozen=True)
class Altitude:
    """Stage 2: height above the ground reference."""

    z: NDArray[np.float64]


@dataclass(frozen=True)
class Acceleration:
    """Stage 3: acceleration from raw (not wind-adjusted) velocity."""

    ax: NDArray[np.float64]
    ay: NDArray[np.float64]
    az: NDArray[np.float64]
    amag: NDArray[np.float64]


@dataclass(frozen=True)
class Motion:
    """Stage 4: planar position relative to exit and horizontal velocity."""

    x: NDArray[np.float64]
    y: NDArray[np.float64]
    vx: NDArray[np.float64]
    vy: NDArray[np.float64]

    @property
    def horizontal_speed(self) -> NDArray[np.float64]:
        return np.sqrt(self.vx**2 + self.vy**2)

    def total_speed(self, vel_d: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.sqrt(self.vx**2 + self.vy**2 + vel_d**2)

    def dive_angle(self, vel_d: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.degrees(np.arctan2(vel_d, self.horizontal_speed))


@dataclass(frozen=True)
class Distance:
    """Stage 5: exit-relative position and cumulative path length."""

    x: NDArray[np.float64]
    y: NDArray[np.float64]
    dist_2d: NDArray[np.float64]
    dist_3d: NDArray[np.float64]


@dataclass(frozen=True)
class Heading:
    """Stage 6: unwrapped heading, course and heading accuracy."""

    heading: NDArray[np.float64]
    theta: NDArray[np.float64]
    c_acc: NDArray[np.float64]


@dataclass(frozen=True)
class Rates:
    """Stage 7: regression slopes of velocity-derived quantities."""

    curv: NDArray[np.float64]
    accel: NDArray[np.float64]
    omega: NDArray[np.float64]


@dataclass(frozen=True)
class Aerodynamics:
    """Stage 8: lift and drag coefficients."""

    lift: NDArray[np.float64]
    drag: NDArray[np.float64]


@dataclass(frozen=True)
class DerivedTrack:
    """All stage results for one track."""

    raw: RawSeries
    time: TimeAxis
    altitude: Altitude
    acceleration: Acceleration
    motion: Motion
    distance: Distance
    heading: Heading
    rates: Rates
    aerodynamics: Aerodynamics

    def __len__(self) -> int:
        return len(self.time.t)

    def columns(self) -> dict[str, NDArray]:
        """One array per Sample field, in Sample field order."""
        raw = self.raw
        cols = {
            "timestamp": raw.timestamp,
            "lat": raw.lat,
            "lon": raw.lon,
            "h_msl": raw.h_msl,
            "vel_n": raw.vel_n,
            "vel_e": raw.vel_e,
            "vel_d": raw.vel_d,
            "h_acc": raw.h_acc,
            "v_acc": raw.v_acc,
            "s_acc": raw.s_acc,
            "num_sv": raw.num_sv,
            "has_geodetic": raw.has_geodetic,
            "t": self.time.t,
            "z": self.altitude.z,
            "ax": self.acceleration.ax,
            "ay": self.acceleration.ay,
            "az": self.acceleration.az,
            "amag": self.acceleration.amag,
            # Stage 5 owns the exit-relative position
            "x": self.distance.x,
            "y": self.distance.y,
            "vx": self.motion.vx,
            "vy": self.motion.vy,
            "dist_2d": self.distance.dist_2d,
            "dist_3d": self.distance.dist_3d,
            "heading": self.heading.heading,
            "theta": self.heading.theta,
            "c_acc": self.heading.c_acc,
            "curv": self.rates.curv,
            "accel": self.rates.accel,
            "omega": self.rates.omega,
            "lift": self.aerodynamics.lift,
            "drag": self.aerodynamics.drag,
        }
        return {name: cols[name] for name in SAMPLE_FIELDS}

    def sample(self, index: int) -> Sample:
        values = {}
        for name, col in self.columns().items():
            v = col[index]
            if name == "num_sv":
                values[name] = int(v)
            elif name == "has_geodetic":
                values[name] = bool(v)
            else:
                values[name] = float(v)
        return Sample(**values)

    def samples(self) -> tuple[Sample, ...]:
        return tuple(self.sample(i) for i in range(len(self)))

    def interpolate_at_t(self, t: float) -> Sample:
        """
        Sample at an arbitrary time.

        Before the first fix returns the first sample, after the last fix the
        last sample, at a fix time that fix; otherwise blends the two fixes
        bracketing t.
        """
        i0, i1, a = interpolation.bracket(self.time.t, t)
        if i1 is None:
            return self.sample(i0)
        return Sample.interpolate(self.sample(i0), self.sample(i1), a)


@dataclass(frozen=True)
class ResolvedOrigins:
    """
    Reference values resolved on the first derivation of a track.

    Kept across re-derivations so positions, heights and courses stay
    comparable after configuration changes.
    """

    ground: float   # m MSL
    wind: Wind
    course: float   # deg
