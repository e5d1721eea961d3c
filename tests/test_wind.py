"""
Tests for wind estimation from ground velocity.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from flytrack.config import TrackOptions
from flytrack.models.wind import Wind, resolve_wind
from flytrack.services.wind import estimate_wind


def _circle(center_e, center_n, radius, n=40, start=0.0, sweep=2 * np.pi):
    angle = start + np.linspace(0, sweep, n)
    return center_e + radius * np.sin(angle), center_n + radius * np.cos(angle)


class TestEstimateWind:
    """Tests for the circle fit."""

    def test_full_circle(self):
        vel_e, vel_n = _circle(3.0, -1.5, 35.0)

        wind = estimate_wind(vel_e, vel_n)

        assert_allclose([wind.east, wind.north], [3.0, -1.5], atol=1e-9)

    def test_partial_arc(self):
        """A quarter turn is enough to locate the centre."""
        vel_e, vel_n = _circle(-6.0, 2.0, 40.0, sweep=np.pi / 2)

        wind = estimate_wind(vel_e, vel_n)

        assert_allclose([wind.east, wind.north], [-6.0, 2.0], atol=1e-6)

    def test_noisy_circle(self):
        rng = np.random.default_rng(7)
        vel_e, vel_n = _circle(4.0, 4.0, 35.0, n=300)
        vel_e = vel_e + rng.normal(0, 0.3, 300)
        vel_n = vel_n + rng.normal(0, 0.3, 300)

        wind = estimate_wind(vel_e, vel_n)

        assert_allclose([wind.east, wind.north], [4.0, 4.0], atol=0.2)

    def test_ignores_nan(self):
        vel_e, vel_n = _circle(1.0, 2.0, 30.0)
        vel_e[5] = np.nan

        wind = estimate_wind(vel_e, vel_n)

        assert_allclose([wind.east, wind.north], [1.0, 2.0], atol=1e-9)

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            estimate_wind(np.array([1.0, 2.0]), np.array([3.0, 4.0]))

    def test_collinear_points(self):
        """Straight flight cannot reveal the wind."""
        with pytest.raises(ValueError):
            estimate_wind(np.linspace(0, 10, 20), np.linspace(0, 10, 20))


class TestWindModel:
    """Tests for the wind value type."""

    def test_calm(self):
        polar = Wind(0.0, 0.0).as_polar()
        assert polar.speed == 0.0
        assert polar.direction == 0.0

    def test_direction_range(self):
        for angle in np.linspace(0, 2 * np.pi, 17):
            polar = Wind(np.sin(angle), np.cos(angle)).as_polar()
            assert 0 <= polar.direction < 360 or np.isclose(polar.direction, 360)

    def test_resolve_manual(self):
        options = TrackOptions(wind_e=2.0, wind_n=-1.0)
        assert resolve_wind(None, options) == Wind(2.0, -1.0)

    def test_resolve_cached(self):
        options = TrackOptions(wind_e=2.0, wind_n=-1.0)
        assert resolve_wind(Wind(9.0, 9.0), options) == Wind(9.0, 9.0)
