"""
Time-indexed lookup over a sorted series.

The t column is assumed non-decreasing; lookups are binary searches.
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray


def find_index_below_t(t_values: NDArray[np.float64], t: float) -> int:
    """Largest index with t_values[i] < t, or -1 if there is none."""
    return int(np.searchsorted(t_values, t, side="left")) - 1


def find_index_above_t(t_values: NDArray[np.float64], t: float) -> int:
    """Smallest index with t_values[i] > t, or len(t_values) if there is none."""
    return int(np.searchsorted(t_values, t, side="right"))


def bracket(t_values: NDArray[np.float64], t: float) -> tuple[int, Optional[int], float]:
    """
    Locate t in the series.

    Returns:
        (i0, i1, a). When t is before the first sample, (0, None, 0.0); after
        the last, (n - 1, None, 0.0); exactly on a sample time, (i, None, 0.0)
        for the first sample at that time. Otherwise t lies strictly between
        t[i0] and t[i1] with i1 = i0 + 1, and a is the fractional position.
    """
    n = len(t_values)
    below = find_index_below_t(t_values, t)
    if below < 0:
        return 0, None, 0.0

    above = find_index_above_t(t_values, t)
    if above >= n:
        return n - 1, None, 0.0

    t0 = t_values[below]
    t1 = t_values[below + 1]
    if t1 == t:
        return below + 1, None, 0.0
    a = float(np.float64(t - t0) / np.float64(t1 - t0))
    return below, below + 1, a


def interpolate_value(
    t_values: NDArray[np.float64],
    values: NDArray[np.float64],
    t: float,
) -> float:
    """Value of a column at time t, linearly interpolated."""
    i0, i1, a = bracket(t_values, t)
    if i1 is None:
        return float(values[i0])
    v0 = values[i0]
    v1 = values[i1]
    return float(v0 + a * (v1 - v0))


def interpolate_flag(
    t_values: NDArray[np.float64],
    flags: NDArray[np.bool_],
    t: float,
) -> bool:
    """Boolean column at time t, taken from the nearer bracketing sample."""
    i0, i1, a = bracket(t_values, t)
    if i1 is None or a < 0.5:
        return bool(flags[i0])
    return bool(flags[i1])
