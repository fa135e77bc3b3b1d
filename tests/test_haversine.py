"""Tests for scoring.haversine_km."""

import pytest

from seismic_monitor.scoring import haversine_km


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_km(35.6762, 139.6503, 35.6762, 139.6503) == 0.0

    def test_known_distance_tokyo_osaka(self):
        d = haversine_km(35.6762, 139.6503, 34.6937, 135.5023)
        assert 390 < d < 410

    def test_known_distance_new_york_london(self):
        d = haversine_km(40.7128, -74.0060, 51.5074, -0.1278)
        assert 5550 < d < 5590

    def test_antipodal_points(self):
        d = haversine_km(0, 0, 0, 180)
        assert 20010 < d < 20020

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ((35.6762, 139.6503), (34.6937, 135.5023)),
            ((10.0, 20.0), (-33.9, 151.2)),
            ((-89.0, -179.0), (89.0, 179.0)),
        ],
    )
    def test_symmetry(self, a, b):
        assert haversine_km(*a, *b) == pytest.approx(haversine_km(*b, *a))

    def test_always_non_negative(self):
        assert haversine_km(-90, -180, 90, 180) >= 0
