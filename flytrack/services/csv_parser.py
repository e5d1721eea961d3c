"""
FlySight CSV adapters.

Parses the two FlySight log generations into raw fix records. Normalization
into the canonical series happens in flytrack.services.canonicalizer.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol

import numpy as np
import pandas as pd

from flytrack.config import TrackOptions
from flytrack.models.raw import FlysightRecord, LegacyFlysightRecord, RawRecord
from flytrack.models.track import Track


logger = logging.getLogger(__name__)


class RecordAdapter(Protocol):
    """Adapter interface for raw fix sources."""

    name: str

    def can_parse(self, filepath: Path, df: Optional[pd.DataFrame] = None) -> bool:
        ...

    def parse(self, filepath: Path) -> list[RawRecord]:
        ...


FLYSIGHT_COLUMNS = ["time", "lat", "lon", "hMSL", "velN", "velE", "velD", "gpsFix", "numSV"]

LEGACY_COLUMNS = [
    "rtcDate",
    "rtcTime",
    "gps_Date",
    "gps_Time",
    "gps_Lat",
    "gps_Long",
    "gps_AltMSL",
    "gps_SIV",
    "gps_FixType",
    "gps_GroundSpeed",
    "gps_Heading",
]


class FlysightCsvAdapter:
    """
    Adapter for FlySight logs: a header row, a units row, then data.

    Dead-reckoned logs leave lat/lon empty.
    """

    name = "flysight"

    def can_parse(self, filepath: Path, df: Optional[pd.DataFrame] = None) -> bool:
        if filepath.suffix.lower() != ".csv":
            return False
        if df is None:
            df = _read_header(filepath)
        columns = {c.strip() for c in df.columns}
        return all(c in columns for c in FLYSIGHT_COLUMNS)

    def parse(self, filepath: Path) -> list[RawRecord]:
        df = pd.read_csv(filepath, skiprows=[1], skipinitialspace=True)
        df.columns = df.columns.str.strip()
        df = df.drop_duplicates(subset="time", keep="first")

        def col(name: str, default=np.nan):
            if name in df.columns:
                return pd.to_numeric(df[name], errors="coerce").to_numpy(dtype=np.float64)
            return np.full(len(df), default, dtype=np.float64)

        lat = col("lat")
        lon = col("lon")
        h_msl = col("hMSL")
        vel_n = col("velN")
        vel_e = col("velE")
        vel_d = col("velD")
        h_acc = col("hAcc")
        v_acc = col("vAcc")
        s_acc = col("sAcc")
        gps_fix = col("gpsFix", 0)
        num_sv = col("numSV", 0)

        records: list[RawRecord] = []
        for i, time in enumerate(df["time"].astype(str)):
            records.append(
                FlysightRecord(
                    time=time.strip(),
                    lat=None if np.isnan(lat[i]) else float(lat[i]),
                    lon=None if np.isnan(lon[i]) else float(lon[i]),
                    h_msl=float(h_msl[i]),
                    vel_n=float(vel_n[i]),
                    vel_e=float(vel_e[i]),
                    vel_d=float(vel_d[i]),
                    h_acc=float(h_acc[i]),
                    v_acc=float(v_acc[i]),
                    s_acc=float(s_acc[i]),
                    gps_fix=_int_or_zero(gps_fix[i]),
                    num_sv=_int_or_zero(num_sv[i]),
                )
            )
        return records


class LegacyFlysightCsvAdapter:
    """Adapter for logs from the older rtc/gps_* firmware."""

    name = "flysight_legacy"

    def can_parse(self, filepath: Path, df: Optional[pd.DataFrame] = None) -> bool:
        if filepath.suffix.lower() != ".csv":
            return False
        if df is None:
            df = _read_header(filepath)
        columns = {c.strip() for c in df.columns}
        return all(c in columns for c in LEGACY_COLUMNS)

    def parse(self, filepath: Path) -> list[RawRecord]:
        df = pd.read_csv(filepath, dtype=str, skipinitialspace=True).fillna("")
        df.columns = df.columns.str.strip()
        df = df.drop_duplicates(subset=["gps_Date", "gps_Time"], keep="first")

        records: list[RawRecord] = []
        for values in df.to_dict("records"):
            records.append(
                LegacyFlysightRecord(
                    rtc_date=values["rtcDate"].strip(),
                    rtc_time=values["rtcTime"].strip(),
                    gps_date=values["gps_Date"].strip(),
                    gps_time=values["gps_Time"].strip(),
                    gps_lat=_parse_int(values["gps_Lat"]),
                    gps_long=_parse_int(values["gps_Long"]),
                    gps_alt_msl=_parse_int(values["gps_AltMSL"]),
                    gps_siv=_parse_int(values["gps_SIV"]),
                    gps_fix_type=_parse_int(values["gps_FixType"]),
                    gps_ground_speed=_parse_int(values["gps_GroundSpeed"]),
                    gps_heading=_parse_int(values["gps_Heading"]),
                )
            )
        return records


ADAPTERS: list[RecordAdapter] = [
    FlysightCsvAdapter(),
    LegacyFlysightCsvAdapter(),
]


def _read_header(filepath: Path) -> pd.DataFrame:
    return pd.read_csv(filepath, nrows=0)


def _select_adapter(filepath: Path, df: Optional[pd.DataFrame] = None) -> RecordAdapter:
    for adapter in ADAPTERS:
        if adapter.can_parse(filepath, df):
            return adapter
    raise ValueError(f"No adapter available for file: {filepath}")


def _parse_int(text: str) -> int:
    text = text.strip()
    if not text:
        return 0
    return int(float(text))


def _int_or_zero(value: float) -> int:
    if np.isnan(value):
        return 0
    return int(value)


def read_flysight_records(filepath: Path) -> list[RawRecord]:
    """
    Read raw records from a FlySight CSV of either generation.
    """
    adapter = _select_adapter(filepath)
    records = adapter.parse(filepath)
    logger.info(f"Read {len(records)} records from {filepath.name} ({adapter.name})")
    return records


def parse_flysight_csv(
    filepath: Path,
    options: Optional[TrackOptions] = None,
) -> Track:
    """
    Parse a FlySight CSV and return a derived Track.
    """
    track = Track.from_records(read_flysight_records(filepath), options)
    track.derive_all()
    return track
