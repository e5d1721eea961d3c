"""
Track: owner of a fix series, its configuration and its derived result.

Typical use:

    track = Track.from_records(records, TrackOptions(wind_adjustment=True))
    track.derive_all()
    exit_sample = track.interpolate_at_t(0.0)
"""

import dataclasses
import logging
from typing import Callable, Iterable, Optional

import numpy as np
import pandas as pd

from flytrack.config import TrackOptions
from flytrack.exceptions import (
    EmptyTrackError,
    TrackAlreadyImportedError,
    TrackNotDerivedError,
)
from flytrack.models.derived import DerivedTrack, ResolvedOrigins
from flytrack.models.raw import RawRecord, RawSeries
from flytrack.models.sample import Sample
from flytrack.models.wind import Wind, WindSpeedDirection, resolve_wind
from flytrack.services import pipeline, wind as wind_estimation
from flytrack.services.canonicalizer import canonicalize_records
from flytrack.utils import interpolation, regression


logger = logging.getLogger(__name__)


class Track:
    """
    A single flight track.

    The track owns its samples exclusively. Ground, wind and reference
    course are resolved on the first derivation and reused by later ones
    until invalidate() is called.
    """

    def __init__(self, options: Optional[TrackOptions] = None):
        self.options: TrackOptions = options if options is not None else TrackOptions()
        self.origins: Optional[ResolvedOrigins] = None
        self._raw: Optional[RawSeries] = None
        self._derived: Optional[DerivedTrack] = None
        self._samples: Optional[tuple[Sample, ...]] = None

    @classmethod
    def from_records(
        cls,
        records: Iterable[RawRecord],
        options: Optional[TrackOptions] = None,
    ) -> "Track":
        track = cls(options)
        track.import_records(records)
        return track

    # ------------------------------------------------------------------
    # Import and derivation
    # ------------------------------------------------------------------

    def import_records(self, records: Iterable[RawRecord]) -> int:
        """
        Bulk-import raw records.

        Returns:
            Number of fixes kept after filtering
        """
        if self._raw is not None:
            raise TrackAlreadyImportedError("Track already holds imported fixes")

        self._raw = canonicalize_records(records)
        logger.info(f"Imported {len(self._raw)} fixes")
        return len(self._raw)

    def derive_all(self) -> DerivedTrack:
        """
        Run the full derivation pipeline.

        On failure the track is left not derived.

        Raises:
            EmptyTrackError: no fixes were imported
        """
        self._derived = None
        self._samples = None

        raw = self.raw
        if len(raw) == 0:
            raise EmptyTrackError("Cannot derive a track with no samples")

        origins = self._resolve_origins()
        self._derived = pipeline.derive_track(raw, origins, self.options)
        return self._derived

    def invalidate(self) -> None:
        """Forget resolved ground, wind and course."""
        self.origins = None
        logger.debug("Resolved origins cleared")

    def _resolve_origins(self) -> ResolvedOrigins:
        if self.origins is None:
            self.origins = ResolvedOrigins(
                ground=pipeline.resolve_ground(self.raw, self.options),
                wind=resolve_wind(None, self.options),
                course=0.0,
            )
            logger.debug(f"Resolved origins: {self.origins}")
        return self.origins

    def set_reference_course(self, course: float) -> None:
        """Use course (deg) as the zero of theta from the next derivation on."""
        self.origins = dataclasses.replace(self._resolve_origins(), course=float(course))

    def estimate_wind(self, start_t: float, end_t: float) -> Wind:
        """
        Estimate wind from raw ground velocity between two times and keep it
        for the next derivation.
        """
        t = self.derived.time.t
        mask = (t >= start_t) & (t <= end_t)
        raw = self.raw
        estimated = wind_estimation.estimate_wind(raw.vel_e[mask], raw.vel_n[mask])
        self.origins = dataclasses.replace(self._resolve_origins(), wind=estimated)
        return estimated

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def raw(self) -> RawSeries:
        if self._raw is None:
            return RawSeries.empty()
        return self._raw

    @property
    def is_derived(self) -> bool:
        return self._derived is not None

    @property
    def derived(self) -> DerivedTrack:
        if self._derived is None:
            raise TrackNotDerivedError("derive_all() has not completed for this track")
        return self._derived

    @property
    def samples(self) -> tuple[Sample, ...]:
        if self._samples is None:
            self._samples = self.derived.samples()
        return self._samples

    def __len__(self) -> int:
        return len(self.raw)

    def __getitem__(self, index: int) -> Sample:
        return self.samples[index]

    def find_index_below_t(self, t: float) -> int:
        return interpolation.find_index_below_t(self.derived.time.t, t)

    def find_index_above_t(self, t: float) -> int:
        return interpolation.find_index_above_t(self.derived.time.t, t)

    def interpolate_at_t(self, t: float) -> Sample:
        return self.derived.interpolate_at_t(t)

    def get_slope(self, center: int, value_at: Callable[[int], float]) -> float:
        """Local regression slope of value_at(i) against sample time."""
        return regression.get_slope(self.derived.time.t, center, value_at)

    def get_wind(self) -> Wind:
        cached = self.origins.wind if self.origins is not None else None
        return resolve_wind(cached, self.options)

    def get_wind_speed_direction(self) -> WindSpeedDirection:
        return self.get_wind().as_polar()

    def to_dataframe(self) -> pd.DataFrame:
        """Derived series with one column per Sample field."""
        df = pd.DataFrame(self.derived.columns())
        df["num_sv"] = df["num_sv"].astype(np.int32)
        return df
