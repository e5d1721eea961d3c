"""
Local least-squares slope estimation.

Numerical differentiation of noisy samples: the slope of a value against time
is the ordinary least-squares fit over a window of up to nine samples centred
on the point of interest. Windows shrink at the ends of the series; nothing is
padded or mirrored.
"""

from typing import Callable

import numpy as np
from numpy.typing import NDArray

from flytrack.constants import REGRESSION_HALF_WINDOW


def get_slope(
    t: NDArray[np.float64],
    center: int,
    value_at: Callable[[int], float],
    half_window: int = REGRESSION_HALF_WINDOW,
) -> float:
    """
    Regression slope of value_at(i) against t[i] around one centre index.

    Args:
        t: Sample times in seconds
        center: Index of the window centre
        value_at: Accessor returning the value for a sample index
        half_window: Samples on each side of the centre

    Returns:
        Slope in value units per second. A window with constant time gives
        NaN or +/-inf.
    """
    lo = max(0, center - half_window)
    hi = min(len(t) - 1, center + half_window)

    sum_x = 0.0
    sum_y = 0.0
    sum_xx = 0.0
    sum_xy = 0.0

    for i in range(lo, hi + 1):
        x = float(t[i])
        y = float(value_at(i))
        sum_x += x
        sum_y += y
        sum_xx += x * x
        sum_xy += x * y

    n = hi - lo + 1
    with np.errstate(divide="ignore", invalid="ignore"):
        num = np.float64(sum_xy - sum_x * sum_y / n)
        den = np.float64(sum_xx - sum_x * sum_x / n)
        return float(num / den)


def local_slopes(
    t: NDArray[np.float64],
    values: NDArray[np.float64],
    half_window: int = REGRESSION_HALF_WINDOW,
) -> NDArray[np.float64]:
    """
    Regression slope for every centre index at once.

    Sums are accumulated offset by offset from the left edge of each window,
    the same order get_slope uses, so the two agree exactly.
    """
    t = np.asarray(t, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    n = len(t)

    sum_x = np.zeros(n)
    sum_y = np.zeros(n)
    sum_xx = np.zeros(n)
    sum_xy = np.zeros(n)
    count = np.zeros(n)

    centers = np.arange(n)
    for offset in range(-half_window, half_window + 1):
        idx = centers + offset
        inside = (idx >= 0) & (idx < n)
        j = idx[inside]
        x = t[j]
        y = values[j]
        sum_x[inside] += x
        sum_y[inside] += y
        sum_xx[inside] += x * x
        sum_xy[inside] += x * y
        count[inside] += 1

    with np.errstate(divide="ignore", invalid="ignore"):
        return (sum_xy - sum_x * sum_y / count) / (sum_xx - sum_x * sum_x / count)
