"""Unit tests for great-circle distance helpers."""

from __future__ import annotations

import pytest

from globalfood.utils.geo import haversine_m, within_tolerance


class TestHaversine:
    def test_same_point_is_zero(self) -> None:
        assert haversine_m(40.73, -73.997, 40.73, -73.997) == 0.0

    def test_one_degree_latitude(self) -> None:
        # One degree of latitude is about 111.2 km on the mean sphere.
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)

    def test_symmetric(self) -> None:
        a = haversine_m(40.7301, -73.9971, 40.7300, -73.9970)
        b = haversine_m(40.7300, -73.9970, 40.7301, -73.9971)
        assert a == pytest.approx(b)

    def test_antipodes_do_not_overflow(self) -> None:
        assert haversine_m(0.0, 0.0, 0.0, 180.0) == pytest.approx(20_015_087, rel=1e-3)


class TestWithinTolerance:
    def test_nearby_points_within_50m(self) -> None:
        # ~14 m apart in lower Manhattan.
        assert within_tolerance(40.7301, -73.9971, 40.7300, -73.9970, 50.0) is True

    def test_points_a_block_apart_outside_50m(self) -> None:
        assert within_tolerance(40.7300, -73.9970, 40.7310, -73.9970, 50.0) is False

    def test_zero_tolerance_only_matches_same_point(self) -> None:
        assert within_tolerance(1.0, 1.0, 1.0, 1.0, 0.0) is True
        assert within_tolerance(1.0, 1.0, 1.0, 1.00001, 0.0) is False
