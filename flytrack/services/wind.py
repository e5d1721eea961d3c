"""
Wind estimation from ground velocity.

While a flyer turns at constant airspeed, ground velocity traces a circle in
the (east, north) plane whose centre is the wind vector. The centre is found
with an algebraic least-squares circle fit.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from flytrack.models.wind import Wind


logger = logging.getLogger(__name__)


def estimate_wind(
    vel_e: NDArray[np.float64],
    vel_n: NDArray[np.float64],
) -> Wind:
    """
    Fit a circle to ground-velocity points and return its centre.

    Solves x^2 + y^2 = 2*cx*x + 2*cy*y + c in the least-squares sense.

    Args:
        vel_e: East ground velocity (m/s)
        vel_n: North ground velocity (m/s)

    Returns:
        Wind vector (m/s)

    Raises:
        ValueError: fewer than three finite points, or all points collinear
    """
    vel_e = np.asarray(vel_e, dtype=np.float64)
    vel_n = np.asarray(vel_n, dtype=np.float64)
    finite = np.isfinite(vel_e) & np.isfinite(vel_n)
    x = vel_e[finite]
    y = vel_n[finite]

    if len(x) < 3:
        raise ValueError(f"Wind estimation needs at least 3 velocity points, got {len(x)}")

    design = np.column_stack((2 * x, 2 * y, np.ones_like(x)))
    target = x**2 + y**2
    solution, _, rank, _ = np.linalg.lstsq(design, target, rcond=None)
    if rank < 3:
        raise ValueError("Velocity points are collinear; cannot fit a wind circle")

    cx, cy, c = solution
    airspeed = float(np.sqrt(c + cx**2 + cy**2))
    logger.info(
        f"Estimated wind from {len(x)} points: east={cx:.2f} m/s, north={cy:.2f} m/s, "
        f"airspeed={airspeed:.2f} m/s"
    )
    return Wind(east=float(cx), north=float(cy))
