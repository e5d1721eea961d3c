"""
Tests for the Track lifecycle and queries.
"""

import dataclasses

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from flytrack.config import GroundReference, TrackOptions
from flytrack.exceptions import (
    EmptyTrackError,
    TrackAlreadyImportedError,
    TrackNotDerivedError,
)
from flytrack.models.sample import SAMPLE_FIELDS, Sample
from flytrack.models.track import Track
from flytrack.models.wind import Wind
from flytrack.utils.sample_data import generate_glide_records, generate_spiral_records


def assert_sample_close(actual: Sample, expected: Sample):
    assert_allclose(
        np.array(dataclasses.astuple(actual), dtype=np.float64),
        np.array(dataclasses.astuple(expected), dtype=np.float64),
        rtol=1e-9,
        atol=1e-9,
        equal_nan=True,
    )


@pytest.fixture
def glide_track():
    track = Track.from_records(generate_glide_records(duration_s=10.0))
    track.derive_all()
    return track


class TestLifecycle:
    """Tests for import and derivation state."""

    def test_derive(self, glide_track):
        assert glide_track.is_derived
        assert len(glide_track) == 51
        assert glide_track[0].t == 0.0
        assert_allclose(glide_track[-1].t, 10.0)

    def test_not_derived(self):
        track = Track.from_records(generate_glide_records(duration_s=1.0))

        assert not track.is_derived
        with pytest.raises(TrackNotDerivedError):
            track.samples
        with pytest.raises(TrackNotDerivedError):
            track.interpolate_at_t(0.0)

    def test_import_once(self):
        track = Track()
        assert track.import_records(generate_glide_records(duration_s=1.0)) == 6

        with pytest.raises(TrackAlreadyImportedError):
            track.import_records(generate_glide_records(duration_s=1.0))

    def test_empty_track(self):
        track = Track.from_records([])

        with pytest.raises(EmptyTrackError):
            track.derive_all()
        assert not track.is_derived

    def test_failed_derive_clears_previous(self, monkeypatch, glide_track):
        def fail(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("flytrack.services.pipeline.derive_track", fail)

        with pytest.raises(RuntimeError):
            glide_track.derive_all()
        assert not glide_track.is_derived

    def test_samples_are_immutable(self, glide_track):
        with pytest.raises(dataclasses.FrozenInstanceError):
            glide_track[0].x = 5.0

    def test_default_options(self):
        track = Track()
        assert track.options == TrackOptions()


class TestInterpolation:
    """Tests for time queries on a derived track."""

    def test_find_index(self, glide_track):
        assert glide_track.find_index_below_t(0.3) == 1
        assert glide_track.find_index_above_t(0.3) == 2
        assert glide_track.find_index_below_t(-1.0) == -1
        assert glide_track.find_index_above_t(100.0) == len(glide_track)

    def test_before_start(self, glide_track):
        assert_sample_close(glide_track.interpolate_at_t(-5.0), glide_track[0])

    def test_after_end(self, glide_track):
        assert_sample_close(glide_track.interpolate_at_t(1e6), glide_track[-1])

    def test_at_sample_times(self, glide_track):
        """Querying a sample's own time returns that sample."""
        for sample in glide_track.samples:
            assert_sample_close(glide_track.interpolate_at_t(sample.t), sample)

    def test_at_sample_time_after_stationary_fixes(self):
        """Non-finite values of the previous fix stay out of the result."""
        records = generate_glide_records(duration_s=4.0)
        for i in (0, 1):
            records[i] = dataclasses.replace(records[i], vel_n=0.0, vel_d=0.0)
        track = Track.from_records(records)
        track.derive_all()
        assert np.isnan(track[1].ax)
        assert np.isfinite(track[2].ax)

        sample = track.interpolate_at_t(track[2].t)

        assert_sample_close(sample, track[2])
        assert np.isfinite(sample.ax)

    def test_mixed_geodetic(self):
        """The geodetic flag and position follow the queried or nearer fix."""
        records = generate_glide_records(duration_s=4.0)
        records[3] = dataclasses.replace(records[3], lat=None, lon=None)
        track = Track.from_records(records)
        track.derive_all()
        p3, p4 = track[3], track[4]
        assert not p3.has_geodetic
        assert p4.has_geodetic

        exact = track.interpolate_at_t(p4.t)
        assert exact.has_geodetic
        assert exact.lat == p4.lat
        assert_sample_close(exact, p4)

        assert not track.interpolate_at_t(p3.t + 0.25 * (p4.t - p3.t)).has_geodetic
        assert track.interpolate_at_t(p3.t + 0.75 * (p4.t - p3.t)).has_geodetic

    def test_interpolate_snaps_flags(self, glide_track):
        p1 = dataclasses.replace(glide_track[0], num_sv=5, has_geodetic=False)
        p2 = dataclasses.replace(glide_track[1], num_sv=9, has_geodetic=True)

        near_first = Sample.interpolate(p1, p2, 0.4)
        near_second = Sample.interpolate(p1, p2, 0.6)

        assert (near_first.num_sv, near_first.has_geodetic) == (5, False)
        assert (near_second.num_sv, near_second.has_geodetic) == (9, True)

    def test_between_samples(self, glide_track):
        p1, p2 = glide_track[2], glide_track[3]

        mid = glide_track.interpolate_at_t((p1.t + p2.t) / 2)

        assert_allclose(mid.t, (p1.t + p2.t) / 2)
        assert_allclose(mid.y, (p1.y + p2.y) / 2)
        assert_allclose(mid.z, (p1.z + p2.z) / 2)
        assert mid.num_sv == p2.num_sv

    def test_exit_is_origin(self, glide_track):
        exit_sample = glide_track.interpolate_at_t(0.0)
        assert exit_sample.x == 0.0
        assert exit_sample.y == 0.0
        assert exit_sample.dist_2d == 0.0

    def test_get_slope(self, glide_track):
        slope = glide_track.get_slope(10, lambda i: glide_track[i].z)
        assert_allclose(slope, -15.0, rtol=1e-6)

    def test_duplicate_times(self):
        records = generate_glide_records(duration_s=1.0)
        records.insert(1, records[0])
        track = Track.from_records(records)
        track.derive_all()

        sample = track.interpolate_at_t(0.0)

        assert sample.t == 0.0


class TestOrigins:
    """Tests for ground, wind and course caching."""

    def test_ground_is_cached(self):
        options = TrackOptions(ground_reference=GroundReference.AUTOMATIC)
        track = Track.from_records(generate_glide_records(duration_s=10.0), options)
        track.derive_all()
        z_auto = track.derived.altitude.z.copy()
        assert z_auto[-1] == 0.0

        track.options.ground_reference = GroundReference.MANUAL
        track.derive_all()
        assert_array_equal(track.derived.altitude.z, z_auto)

        track.invalidate()
        track.derive_all()
        assert_allclose(track.derived.altitude.z, track.raw.h_msl)

    def test_wind_is_cached(self):
        options = TrackOptions(wind_adjustment=True, wind_e=3.0)
        track = Track.from_records(generate_glide_records(duration_s=5.0), options)
        track.derive_all()
        assert_allclose(track.derived.motion.vx, -3.0)

        track.options.wind_e = 10.0
        track.derive_all()
        assert_allclose(track.derived.motion.vx, -3.0)

        track.invalidate()
        track.derive_all()
        assert_allclose(track.derived.motion.vx, -10.0)

    def test_reference_course(self):
        track = Track.from_records(generate_glide_records(duration_s=5.0, vel_n=0.0, vel_e=30.0))
        track.set_reference_course(90.0)
        track.derive_all()

        assert_allclose(track.derived.heading.heading, 90.0)
        assert_allclose(track.derived.heading.theta, 0.0, atol=1e-12)

    def test_invalid_option_rejected(self, glide_track):
        with pytest.raises(ValueError):
            glide_track.options.mass = -1.0


class TestWind:
    """Tests for wind queries and estimation."""

    @pytest.mark.parametrize(
        "east, north, direction",
        [(0.0, -5.0, 0.0), (5.0, 0.0, 270.0), (0.0, 5.0, 180.0), (-5.0, 0.0, 90.0)],
    )
    def test_speed_direction(self, east, north, direction):
        """Direction is where the wind blows from."""
        track = Track(TrackOptions(wind_e=east, wind_n=north))

        polar = track.get_wind_speed_direction()

        assert_allclose(polar.speed, 5.0)
        assert_allclose(polar.direction, direction, atol=1e-9)

    def test_get_wind_prefers_resolved(self, glide_track):
        glide_track.options.wind_e = 7.0
        assert glide_track.get_wind() == Wind(0.0, 0.0)

        glide_track.invalidate()
        assert glide_track.get_wind() == Wind(7.0, 0.0)

    def test_estimate_wind(self):
        track = Track.from_records(generate_spiral_records(wind_e=4.0, wind_n=-2.0))
        track.derive_all()

        wind = track.estimate_wind(0.0, 60.0)

        assert_allclose([wind.east, wind.north], [4.0, -2.0], atol=1e-6)
        assert track.get_wind() == wind

    def test_estimated_wind_removes_drift(self):
        """After wind adjustment the horizontal airspeed is constant."""
        options = TrackOptions(wind_adjustment=True)
        track = Track.from_records(generate_spiral_records(wind_e=4.0, wind_n=-2.0), options)
        track.derive_all()

        track.estimate_wind(0.0, 30.0)
        track.derive_all()

        assert_allclose(track.derived.motion.horizontal_speed, 35.0, rtol=1e-6)

    def test_estimate_wind_needs_turn(self, glide_track):
        with pytest.raises(ValueError):
            glide_track.estimate_wind(0.0, 10.0)


class TestExport:
    """Tests for tabular export."""

    def test_to_dataframe(self, glide_track):
        df = glide_track.to_dataframe()

        assert list(df.columns) == list(SAMPLE_FIELDS)
        assert len(df) == len(glide_track)
        assert df["num_sv"].dtype == np.int32
        assert_allclose(df["vel_d"], 15.0)

    def test_sample_properties(self, glide_track):
        sample = glide_track[5]

        assert_allclose(sample.horizontal_speed, 30.0)
        assert_allclose(sample.total_speed, np.sqrt(1125.0))
        assert_allclose(sample.glide_ratio, 2.0)
        assert_allclose(sample.dive_angle, np.degrees(np.arctan2(15.0, 30.0)))
        assert sample.elevation == sample.z
        assert sample.course == sample.theta
