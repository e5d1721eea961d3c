"""
Sample data generator for testing.

Generates synthetic wingsuit flights as FlySight records, and writes them in
the FlySight CSV format.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from flytrack.constants import EARTH_RADIUS_M
from flytrack.models.raw import FlysightRecord


DEFAULT_START = datetime(2024, 5, 4, 16, 52, 0, tzinfo=timezone.utc)
METERS_PER_DEG_LAT = EARTH_RADIUS_M * np.pi / 180


def generate_glide_records(
    duration_s: float = 30.0,
    sample_rate_hz: float = 5.0,
    vel_n: float = 30.0,
    vel_e: float = 0.0,
    vel_d: float = 15.0,
    start_lat: float = 47.2,
    start_lon: float = 8.5,
    start_h_msl: float = 3000.0,
    dead_reckoned: bool = False,
    start_time: datetime = DEFAULT_START,
) -> list[FlysightRecord]:
    """
    Straight glide at constant ground velocity.
    """
    n_samples = int(round(duration_s * sample_rate_hz)) + 1
    t = np.arange(n_samples) / sample_rate_hz

    east = vel_e * t
    north = vel_n * t
    h_msl = start_h_msl - vel_d * t

    return _build_records(
        t,
        east,
        north,
        h_msl,
        np.full(n_samples, vel_n),
        np.full(n_samples, vel_e),
        np.full(n_samples, vel_d),
        start_lat,
        start_lon,
        dead_reckoned,
        start_time,
    )


def generate_spiral_records(
    duration_s: float = 60.0,
    sample_rate_hz: float = 5.0,
    airspeed: float = 35.0,
    turn_rate_deg_s: float = 12.0,
    vel_d: float = 20.0,
    wind_e: float = 0.0,
    wind_n: float = 0.0,
    start_heading_deg: float = 0.0,
    start_lat: float = 47.2,
    start_lon: float = 8.5,
    start_h_msl: float = 3500.0,
    noise_std: float = 0.0,
    seed: int = 0,
    dead_reckoned: bool = False,
    start_time: datetime = DEFAULT_START,
) -> list[FlysightRecord]:
    """
    Constant-rate turn at constant horizontal airspeed, drifting with wind.

    Ground velocity is air velocity plus wind, so the horizontal ground
    velocity traces a circle centred on the wind vector.
    """
    n_samples = int(round(duration_s * sample_rate_hz)) + 1
    t = np.arange(n_samples) / sample_rate_hz

    omega = np.radians(turn_rate_deg_s)
    psi0 = np.radians(start_heading_deg)
    psi = psi0 + omega * t

    ground_e = airspeed * np.sin(psi) + wind_e
    ground_n = airspeed * np.cos(psi) + wind_n

    if omega == 0:
        east = ground_e * t
        north = ground_n * t
    else:
        east = airspeed / omega * (np.cos(psi0) - np.cos(psi)) + wind_e * t
        north = airspeed / omega * (np.sin(psi) - np.sin(psi0)) + wind_n * t

    if noise_std > 0:
        rng = np.random.default_rng(seed)
        ground_e = ground_e + rng.normal(0, noise_std, n_samples)
        ground_n = ground_n + rng.normal(0, noise_std, n_samples)

    h_msl = start_h_msl - vel_d * t

    return _build_records(
        t,
        east,
        north,
        h_msl,
        ground_n,
        ground_e,
        np.full(n_samples, vel_d),
        start_lat,
        start_lon,
        dead_reckoned,
        start_time,
    )


def _build_records(
    t: NDArray[np.float64],
    east: NDArray[np.float64],
    north: NDArray[np.float64],
    h_msl: NDArray[np.float64],
    vel_n: NDArray[np.float64],
    vel_e: NDArray[np.float64],
    vel_d: NDArray[np.float64],
    start_lat: float,
    start_lon: float,
    dead_reckoned: bool,
    start_time: datetime,
) -> list[FlysightRecord]:
    # Local tangent-plane approximation, adequate over a few kilometers
    meters_per_deg_lon = METERS_PER_DEG_LAT * np.cos(np.radians(start_lat))
    lat = start_lat + north / METERS_PER_DEG_LAT
    lon = start_lon + east / meters_per_deg_lon

    records = []
    for i in range(len(t)):
        records.append(
            FlysightRecord(
                time=format_time(start_time + timedelta(seconds=float(t[i]))),
                lat=None if dead_reckoned else float(lat[i]),
                lon=None if dead_reckoned else float(lon[i]),
                h_msl=float(h_msl[i]),
                vel_n=float(vel_n[i]),
                vel_e=float(vel_e[i]),
                vel_d=float(vel_d[i]),
                h_acc=3.0,
                v_acc=5.0,
                s_acc=0.5,
                gps_fix=3,
                num_sv=12,
            )
        )
    return records


def format_time(moment: datetime) -> str:
    """FlySight timestamp: ISO 8601 UTC with millisecond precision."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def write_flysight_csv(records: list[FlysightRecord], output_path: Path) -> Path:
    """
    Write records as a FlySight CSV (header row, units row, data).
    """
    lines = [
        "time,lat,lon,hMSL,velN,velE,velD,hAcc,vAcc,sAcc,gpsFix,numSV",
        ",(deg),(deg),(m),(m/s),(m/s),(m/s),(m),(m),(m/s),,",
    ]
    for r in records:
        lines.append(
            f"{r.time},"
            f"{_fmt(r.lat, 7)},"
            f"{_fmt(r.lon, 7)},"
            f"{r.h_msl:.3f},"
            f"{r.vel_n:.2f},"
            f"{r.vel_e:.2f},"
            f"{r.vel_d:.2f},"
            f"{r.h_acc:.3f},"
            f"{r.v_acc:.3f},"
            f"{r.s_acc:.2f},"
            f"{r.gps_fix},"
            f"{r.num_sv}"
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write("\n".join(lines) + "\n")

    return output_path


def _fmt(value: Optional[float], digits: int) -> str:
    if value is None:
        return ""
    return f"{value:.{digits}f}"


if __name__ == "__main__":
    output = Path("./data/flights")
    glide = write_flysight_csv(generate_glide_records(), output / "glide.csv")
    spiral = write_flysight_csv(
        generate_spiral_records(wind_e=4.0, wind_n=-2.0, noise_std=0.2),
        output / "spiral_with_wind.csv",
    )
    print(f"Generated {glide} and {spiral}")
