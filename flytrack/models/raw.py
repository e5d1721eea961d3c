"""
Raw fix records (source-format, unnormalized) and the canonical raw series.

Adapters produce one of the record variants below; the canonicalizer turns a
batch of them into a RawSeries, after which the firmware generation no longer
matters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import numpy as np
from numpy.typing import NDArray


class DataProvenance(Enum):
    """Provenance for a raw channel."""

    MEASURED = "measured"
    DERIVED = "derived"


@dataclass(frozen=True)
class LegacyFlysightRecord:
    """One fix from the older firmware, in the receiver's integer units."""

    rtc_date: str
    rtc_time: str
    gps_date: str
    gps_time: str
    gps_lat: int           # degrees * 1e7
    gps_long: int          # degrees * 1e7
    gps_alt_msl: int       # millimeters
    gps_siv: int           # satellites in view
    gps_fix_type: int      # 0 none, 2 2D, 3 3D, 4 GNSS + dead reckoning
    gps_ground_speed: int  # mm/s
    gps_heading: int       # degrees * 1e5

    def has_3d_fix(self) -> bool:
        return self.gps_fix_type in (3, 4)


@dataclass(frozen=True)
class FlysightRecord:
    """One fix from the current firmware, already in SI units."""

    time: str                # ISO 8601, e.g. 2019-05-04T16:52:01.40Z
    lat: Optional[float]     # degrees, None in dead-reckoned logs
    lon: Optional[float]
    h_msl: float             # m
    vel_n: float             # m/s
    vel_e: float
    vel_d: float             # m/s, down positive
    h_acc: float = np.nan    # m
    v_acc: float = np.nan    # m
    s_acc: float = np.nan    # m/s
    gps_fix: int = 3
    num_sv: int = 0

    def has_3d_fix(self) -> bool:
        return self.gps_fix == 3


RawRecord = Union[LegacyFlysightRecord, FlysightRecord]


@dataclass
class RawSeries:
    """
    Canonical raw fixes, one array element per sample.

    Units: timestamp epoch milliseconds; lat/lon degrees (NaN when absent);
    heights meters; velocities m/s in the NED frame.
    """

    timestamp: NDArray[np.float64]
    lat: NDArray[np.float64]
    lon: NDArray[np.float64]
    h_msl: NDArray[np.float64]
    vel_n: NDArray[np.float64]
    vel_e: NDArray[np.float64]
    vel_d: NDArray[np.float64]
    h_acc: NDArray[np.float64]
    v_acc: NDArray[np.float64]
    s_acc: NDArray[np.float64]
    num_sv: NDArray[np.int32]
    has_geodetic: NDArray[np.bool_]

    provenance: dict[str, DataProvenance] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.timestamp)

    @property
    def horizontal_speed(self) -> NDArray[np.float64]:
        return np.sqrt(self.vel_n**2 + self.vel_e**2)

    @classmethod
    def empty(cls) -> "RawSeries":
        f = np.empty(0, dtype=np.float64)
        return cls(
            timestamp=f,
            lat=f,
            lon=f,
            h_msl=f,
            vel_n=f,
            vel_e=f,
            vel_d=f,
            h_acc=f,
            v_acc=f,
            s_acc=f,
            num_sv=np.empty(0, dtype=np.int32),
            has_geodetic=np.empty(0, dtype=np.bool_),
        )
