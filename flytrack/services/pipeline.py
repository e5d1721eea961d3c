"""
Track derivation pipeline.

Eight ordered stages turn a canonical RawSeries into a DerivedTrack:

1. time normalization
2. altitude above ground
3. acceleration from raw velocity
4. position and velocity, optionally wind-adjusted
5. cumulative distance, re-zeroed at exit
6. heading, course and heading accuracy
7. regression slopes of dive angle, speed and course
8. lift and drag coefficients

Degenerate data (constant time in a regression window, zero speed) produces
NaN or inf in the affected samples; it never aborts the derivation.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from flytrack.config import GroundReference, TrackOptions
from flytrack.constants import (
    A_GRAVITY,
    GAS_CONST,
    LAPSE_RATE,
    MM_AIR,
    SL_PRESSURE,
    SL_TEMP,
)
from flytrack.exceptions import EmptyTrackError
from flytrack.models.derived import (
    Acceleration,
    Aerodynamics,
    Altitude,
    DerivedTrack,
    Distance,
    Heading,
    Motion,
    Rates,
    ResolvedOrigins,
    TimeAxis,
)
from flytrack.models.raw import RawSeries
from flytrack.models.wind import Wind
from flytrack.utils.geodesy import (
    approximate_bearing,
    dead_reckon,
    haversine_distance,
    heading_from_velocity,
    initial_bearing,
    planar_bearing,
    planar_distance,
    unwrap_heading,
)
from flytrack.utils.interpolation import interpolate_flag, interpolate_value
from flytrack.utils.regression import local_slopes


logger = logging.getLogger(__name__)

EXIT_T = 0.0


def derive_track(
    raw: RawSeries,
    origins: ResolvedOrigins,
    options: TrackOptions,
) -> DerivedTrack:
    """
    Run all stages over a raw series.

    Raises:
        EmptyTrackError: the series has no samples
    """
    if len(raw) == 0:
        raise EmptyTrackError("Cannot derive a track with no samples")

    logger.info(
        f"Deriving {len(raw)} samples (ground={origins.ground:.1f} m, "
        f"wind_adjustment={options.wind_adjustment}, course={origins.course:.1f} deg)"
    )

    with np.errstate(divide="ignore", invalid="ignore"):
        time = normalize_time(raw)
        altitude = reference_altitude(raw, origins.ground)
        acceleration = raw_acceleration(raw, time)
        motion = resolve_motion(raw, time, origins.wind, options)
        distance = accumulate_distance(raw, time, motion)
        heading = resolve_heading(raw, motion, origins.course)
        rates = velocity_rates(raw, time, motion, heading)
        aero = aerodynamics(raw, time, motion, options)

    _warn_non_finite("acceleration", acceleration.ax, acceleration.ay, acceleration.amag)
    _warn_non_finite("heading", heading.heading, heading.theta)
    _warn_non_finite("rates", rates.curv, rates.accel, rates.omega)
    _warn_non_finite("aerodynamics", aero.lift, aero.drag)

    return DerivedTrack(
        raw=raw,
        time=time,
        altitude=altitude,
        acceleration=acceleration,
        motion=motion,
        distance=distance,
        heading=heading,
        rates=rates,
        aerodynamics=aero,
    )


def resolve_ground(raw: RawSeries, options: TrackOptions) -> float:
    """Ground altitude (m MSL) for the configured reference mode."""
    if options.ground_reference == GroundReference.AUTOMATIC:
        if len(raw) == 0:
            raise EmptyTrackError("Automatic ground reference needs at least one sample")
        return float(raw.h_msl[-1])
    return float(options.fixed_reference)


def normalize_time(raw: RawSeries) -> TimeAxis:
    """Stage 1: seconds since the first fix."""
    t = (raw.timestamp - raw.timestamp[0]) / 1000.0
    logger.debug(f"Time axis: {t[-1]:.2f} s over {len(t)} samples")
    return TimeAxis(t=t)


def reference_altitude(raw: RawSeries, ground: float) -> Altitude:
    """Stage 2: height above ground."""
    return Altitude(z=raw.h_msl - ground)


def raw_acceleration(raw: RawSeries, time: TimeAxis) -> Acceleration:
    """
    Stage 3: acceleration decomposed along and across the raw ground track.

    Uses measured velocity, independent of any wind adjustment. Cross-track
    acceleration is positive towards the right of the direction of travel.
    """
    a_n = local_slopes(time.t, raw.vel_n)
    a_e = local_slopes(time.t, raw.vel_e)
    a_d = local_slopes(time.t, raw.vel_d)

    v_n = raw.vel_n
    v_e = raw.vel_e
    v_h = raw.horizontal_speed

    return Acceleration(
        ax=(a_n * v_n + a_e * v_e) / v_h,
        ay=(a_e * v_n - a_n * v_e) / v_h,
        az=a_d,
        amag=np.sqrt(a_n**2 + a_e**2 + a_d**2),
    )


def resolve_motion(
    raw: RawSeries,
    time: TimeAxis,
    wind: Wind,
    options: TrackOptions,
) -> Motion:
    """
    Stage 4: position relative to the exit fix and horizontal velocity.

    Fixes with a geodetic solution (and a geodetic exit) are placed by
    great-circle distance and bearing; the rest by dead-reckoned planar
    offsets. With wind adjustment the wind drift is removed from both
    position and velocity.

    The placement mode follows fix availability, not the wind-adjustment
    flag; that flag only controls the wind subtraction.
    """
    t = time.t
    dr_east, dr_north = dead_reckon(t, raw.vel_e, raw.vel_n)

    exit_lat = interpolate_value(t, raw.lat, EXIT_T)
    exit_lon = interpolate_value(t, raw.lon, EXIT_T)
    exit_east = interpolate_value(t, dr_east, EXIT_T)
    exit_north = interpolate_value(t, dr_north, EXIT_T)
    exit_geodetic = interpolate_flag(t, raw.has_geodetic, EXIT_T)

    geodetic = raw.has_geodetic & exit_geodetic
    bearing_fn = initial_bearing if options.exact_bearing else approximate_bearing

    dx = dr_east - exit_east
    dy = dr_north - exit_north
    distance = np.where(
        geodetic,
        haversine_distance(exit_lat, exit_lon, raw.lat, raw.lon),
        planar_distance(dx, dy),
    )
    bearing = np.where(
        geodetic,
        bearing_fn(exit_lat, exit_lon, raw.lat, raw.lon),
        planar_bearing(dx, dy),
    )

    x = distance * np.sin(bearing)
    y = distance * np.cos(bearing)

    if options.wind_adjustment:
        logger.debug(f"Wind adjustment: east={wind.east:.2f} m/s, north={wind.north:.2f} m/s")
        return Motion(
            x=x - wind.east * t,
            y=y - wind.north * t,
            vx=raw.vel_e - wind.east,
            vy=raw.vel_n - wind.north,
        )

    return Motion(x=x, y=y, vx=raw.vel_e.copy(), vy=raw.vel_n.copy())


def accumulate_distance(raw: RawSeries, time: TimeAxis, motion: Motion) -> Distance:
    """
    Stage 5: cumulative 2D/3D path length, everything re-zeroed at exit.
    """
    step_2d = np.hypot(np.diff(motion.x), np.diff(motion.y))
    step_3d = np.hypot(step_2d, np.diff(raw.h_msl))

    dist_2d = np.concatenate(([0.0], np.cumsum(step_2d)))
    dist_3d = np.concatenate(([0.0], np.cumsum(step_3d)))

    t = time.t
    x0 = interpolate_value(t, motion.x, EXIT_T)
    y0 = interpolate_value(t, motion.y, EXIT_T)
    d2_0 = interpolate_value(t, dist_2d, EXIT_T)
    d3_0 = interpolate_value(t, dist_3d, EXIT_T)

    return Distance(
        x=motion.x - x0,
        y=motion.y - y0,
        dist_2d=dist_2d - d2_0,
        dist_3d=dist_3d - d3_0,
    )


def resolve_heading(raw: RawSeries, motion: Motion, course: float) -> Heading:
    """
    Stage 6: continuous heading, course relative to the reference, and
    heading accuracy from speed accuracy.
    """
    heading = unwrap_heading(heading_from_velocity(motion.vx, motion.vy))
    speed = motion.total_speed(raw.vel_d)
    c_acc = np.where(speed == 0, 0.0, raw.s_acc / speed)

    return Heading(heading=heading, theta=heading - course, c_acc=c_acc)


def velocity_rates(
    raw: RawSeries,
    time: TimeAxis,
    motion: Motion,
    heading: Heading,
) -> Rates:
    """Stage 7: rates of dive angle, total speed and course."""
    return Rates(
        curv=local_slopes(time.t, motion.dive_angle(raw.vel_d)),
        accel=local_slopes(time.t, motion.total_speed(raw.vel_d)),
        omega=local_slopes(time.t, heading.theta),
    )


def aerodynamics(
    raw: RawSeries,
    time: TimeAxis,
    motion: Motion,
    options: TrackOptions,
) -> Aerodynamics:
    """
    Stage 8: lift and drag coefficients.

    The aerodynamic acceleration (measured acceleration minus gravity) is
    split into the component along the air-relative velocity (drag) and the
    remainder (lift). Both coefficients are magnitudes.
    """
    a_n = local_slopes(time.t, motion.vy)
    a_e = local_slopes(time.t, motion.vx)
    a_d = local_slopes(time.t, raw.vel_d) - A_GRAVITY

    v_n = motion.vy
    v_e = motion.vx
    v_d = raw.vel_d
    vel = motion.total_speed(v_d)

    a_drag = (a_n * v_n + a_e * v_e + a_d * v_d) / vel

    lift_n = a_n - a_drag * v_n / vel
    lift_e = a_e - a_drag * v_e / vel
    lift_d = a_d - a_drag * v_d / vel
    a_lift = np.sqrt(lift_n**2 + lift_e**2 + lift_d**2)

    q = dynamic_pressure(raw.h_msl, vel)
    scale = options.mass / q / options.planform_area

    return Aerodynamics(lift=a_lift * scale, drag=np.abs(a_drag) * scale)


def air_density(h_msl: NDArray[np.float64]) -> NDArray[np.float64]:
    """Standard-atmosphere air density (kg/m^3) at a height above MSL."""
    pressure = SL_PRESSURE * (1 - LAPSE_RATE * h_msl / SL_TEMP) ** (
        A_GRAVITY * MM_AIR / GAS_CONST / LAPSE_RATE
    )
    temperature = SL_TEMP - LAPSE_RATE * h_msl
    return pressure / (GAS_CONST / MM_AIR) / temperature


def dynamic_pressure(h_msl: NDArray[np.float64], airspeed: NDArray[np.float64]) -> NDArray[np.float64]:
    return air_density(h_msl) * airspeed * airspeed / 2


def _warn_non_finite(stage: str, *arrays: NDArray[np.float64]) -> None:
    bad = np.zeros(len(arrays[0]), dtype=np.bool_)
    for arr in arrays:
        bad |= ~np.isfinite(arr)
    count = int(np.count_nonzero(bad))
    if count:
        logger.warning(f"Stage '{stage}' produced non-finite values for {count} of {len(bad)} samples")
