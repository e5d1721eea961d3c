"""
Geodesy helpers.

Distance and bearing from the exit reference to each fix, either on a sphere
(geodetic fixes) or in the local plane (dead-reckoned fixes), plus heading
unwrapping.
"""

import numpy as np
from numpy.typing import NDArray

from flytrack.constants import EARTH_RADIUS_M


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate great-circle distance between two points.

    Accepts scalars or numpy arrays (broadcast).

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat / 2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def approximate_bearing(lat1, lon1, lat2, lon2):
    """
    Bearing as computed by the original FlySight web viewer.

    The great-circle distance along the latitude axis alone is scaled into
    an angle (meters / 180 * pi). This is not a true bearing and is kept for
    numerical parity; longitude does not enter the result.

    Returns:
        Angle in radians
    """
    along_lat = haversine_distance(lat1, 0.0, lat2, 0.0)
    return along_lat / 180.0 * np.pi


def initial_bearing(lat1, lon1, lat2, lon2):
    """
    Spherical forward azimuth from point 1 to point 2.

    Returns:
        Radians clockwise from north
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dlon = np.radians(np.subtract(lon2, lon1))

    y = np.sin(dlon) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlon)
    return np.arctan2(y, x)


def planar_distance(dx, dy):
    """Euclidean distance of an east/north offset."""
    return np.hypot(dx, dy)


def planar_bearing(dx, dy):
    """Bearing of an east/north offset, radians clockwise from north."""
    return np.arctan2(dx, dy)


def dead_reckon(
    t: NDArray[np.float64],
    vel_e: NDArray[np.float64],
    vel_n: NDArray[np.float64],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Integrate ground velocity into planar positions.

    Trapezoidal rule, starting at (0, 0) on the first sample.

    Returns:
        Tuple of (east, north) arrays in meters
    """
    if len(t) == 0:
        return np.zeros(0), np.zeros(0)

    dt = np.diff(t)
    east = np.concatenate(([0.0], np.cumsum(dt * (vel_e[1:] + vel_e[:-1]) / 2)))
    north = np.concatenate(([0.0], np.cumsum(dt * (vel_n[1:] + vel_n[:-1]) / 2)))
    return east, north


def heading_from_velocity(
    vel_e: NDArray[np.float64],
    vel_n: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Direction of travel in degrees (0=North, 90=East), in (-180, 180].
    """
    return np.degrees(np.arctan2(vel_e, vel_n))


def unwrap_heading(heading: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Make heading continuous by adding or subtracting whole turns.

    Each sample is shifted until it is within 180 degrees of the previous
    (already unwrapped) sample. Non-finite samples are left as they are and
    the next finite sample unwraps against the last finite one.
    """
    result = np.array(heading, dtype=np.float64, copy=True)
    prev = np.nan
    for i in range(len(result)):
        if not np.isfinite(result[i]):
            continue
        if np.isfinite(prev):
            while result[i] - prev > 180:
                result[i] -= 360
            while result[i] - prev < -180:
                result[i] += 360
        prev = result[i]
    return result
