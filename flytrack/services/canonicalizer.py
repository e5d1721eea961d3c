"""
Canonicalizer for raw fix records.

Filters out fixes without a valid 3D solution, normalizes units of both
firmware generations, and packs the result into a columnar RawSeries.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from flytrack.config import MIN_SATELLITES
from flytrack.models.raw import (
    DataProvenance,
    FlysightRecord,
    LegacyFlysightRecord,
    RawRecord,
    RawSeries,
)


logger = logging.getLogger(__name__)

_EPOCH = pd.Timestamp(0, tz="UTC")


def canonicalize_records(records: Iterable[RawRecord]) -> RawSeries:
    """
    Convert raw records into a canonical RawSeries.

    Records must arrive in ascending time order without duplicates.
    """
    kept: list[RawRecord] = []
    dropped = 0
    for record in records:
        if not _usable_fix(record):
            dropped += 1
            continue
        kept.append(record)

    if dropped:
        logger.warning(f"Dropped {dropped} fixes without a usable 3D solution")

    if not kept:
        return RawSeries.empty()

    rows = [_normalize_record(r) for r in kept]
    columns = list(zip(*rows))

    timestamp = np.array(columns[0], dtype=np.float64)
    lat = np.array(columns[1], dtype=np.float64)
    lon = np.array(columns[2], dtype=np.float64)
    h_msl = np.array(columns[3], dtype=np.float64)
    vel_n = np.array(columns[4], dtype=np.float64)
    vel_e = np.array(columns[5], dtype=np.float64)
    vel_d = np.array(columns[6], dtype=np.float64)
    h_acc = np.array(columns[7], dtype=np.float64)
    v_acc = np.array(columns[8], dtype=np.float64)
    s_acc = np.array(columns[9], dtype=np.float64)
    num_sv = np.array(columns[10], dtype=np.int32)

    assert np.all(np.diff(timestamp) >= 0), "Fix timestamps must be non-decreasing"

    has_geodetic = ~(np.isnan(lat) | np.isnan(lon))

    legacy = np.array([isinstance(r, LegacyFlysightRecord) for r in kept], dtype=np.bool_)
    provenance = {
        "lat": DataProvenance.MEASURED,
        "lon": DataProvenance.MEASURED,
        "h_msl": DataProvenance.MEASURED,
        "vel_n": DataProvenance.MEASURED,
        "vel_e": DataProvenance.MEASURED,
        "vel_d": DataProvenance.MEASURED,
    }
    if np.any(legacy):
        derived = _derive_vertical_speed(timestamp, h_msl)
        vel_d = np.where(legacy, derived, vel_d)
        provenance["vel_d"] = DataProvenance.DERIVED

    logger.info(
        f"Canonicalized {len(timestamp)} fixes "
        f"({int(np.count_nonzero(has_geodetic))} geodetic, {int(np.count_nonzero(legacy))} legacy)"
    )

    return RawSeries(
        timestamp=timestamp,
        lat=lat,
        lon=lon,
        h_msl=h_msl,
        vel_n=vel_n,
        vel_e=vel_e,
        vel_d=vel_d,
        h_acc=h_acc,
        v_acc=v_acc,
        s_acc=s_acc,
        num_sv=num_sv,
        has_geodetic=has_geodetic,
        provenance=provenance,
    )


def _usable_fix(record: RawRecord) -> bool:
    if not record.has_3d_fix():
        return False
    return _satellite_count(record) >= MIN_SATELLITES


def _satellite_count(record: RawRecord) -> int:
    if isinstance(record, LegacyFlysightRecord):
        return record.gps_siv
    return record.num_sv


def _normalize_record(record: RawRecord) -> tuple:
    """
    Canonical row: (timestamp_ms, lat, lon, h_msl, vel_n, vel_e, vel_d,
    h_acc, v_acc, s_acc, num_sv).
    """
    if isinstance(record, LegacyFlysightRecord):
        return _normalize_legacy(record)
    if isinstance(record, FlysightRecord):
        return _normalize_current(record)
    raise TypeError(f"Unsupported raw record type: {type(record).__name__}")


def _normalize_legacy(record: LegacyFlysightRecord) -> tuple:
    ground_speed = record.gps_ground_speed / 1000.0
    heading = math.radians(record.gps_heading / 1.0e5)
    return (
        _to_epoch_ms(f"{record.gps_date} {record.gps_time}"),
        record.gps_lat / 1.0e7,
        record.gps_long / 1.0e7,
        record.gps_alt_msl / 1000.0,
        ground_speed * math.cos(heading),
        ground_speed * math.sin(heading),
        math.nan,  # filled from the height series
        math.nan,
        math.nan,
        math.nan,
        record.gps_siv,
    )


def _normalize_current(record: FlysightRecord) -> tuple:
    return (
        _to_epoch_ms(record.time),
        _optional_float(record.lat),
        _optional_float(record.lon),
        float(record.h_msl),
        float(record.vel_n),
        float(record.vel_e),
        float(record.vel_d),
        float(record.h_acc),
        float(record.v_acc),
        float(record.s_acc),
        record.num_sv,
    )


def _to_epoch_ms(text: str) -> float:
    """Parse a date/time string as UTC and return epoch milliseconds."""
    ts = pd.Timestamp(text)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return (ts - _EPOCH) / pd.Timedelta(milliseconds=1)


def _optional_float(value: Optional[float]) -> float:
    if value is None:
        return math.nan
    return float(value)


def _derive_vertical_speed(
    timestamp: NDArray[np.float64],
    h_msl: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Down-positive vertical speed from the height series."""
    if len(timestamp) < 2:
        return np.zeros_like(h_msl)
    t = (timestamp - timestamp[0]) / 1000.0
    with np.errstate(divide="ignore", invalid="ignore"):
        return -np.gradient(h_msl, t)
