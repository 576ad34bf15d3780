"""
Tests for Geo Utilities

Haversine distance and coordinate validation.
"""

import math

import pytest

from app.models.location import Location, validate_coordinates
from app.utils.geo import distance_meters
from factories import METERS_PER_DEGREE_LAT


class TestDistanceMeters:
    """Tests for distance_meters."""

    def test_identical_points_are_zero(self):
        """Scenario: the same Delhi coordinate twice is 0 m apart."""
        assert distance_meters((77.209, 28.6139), (77.209, 28.6139)) == 0

    def test_symmetric(self):
        a = (77.209, 28.6139)
        b = (72.8777, 19.0760)

        assert distance_meters(a, b) == distance_meters(b, a)

    def test_one_degree_of_latitude(self):
        d = distance_meters((0.0, 0.0), (0.0, 1.0))

        assert d == pytest.approx(METERS_PER_DEGREE_LAT, rel=1e-9)

    def test_known_city_pair(self):
        """Delhi to Mumbai is roughly 1150 km on the great circle."""
        d = distance_meters((77.209, 28.6139), (72.8777, 19.0760))

        assert 1_140_000 < d < 1_160_000

    def test_longitude_first(self):
        """Swapping lng/lat changes the answer, so order matters."""
        a = (77.209, 28.6139)
        b = (77.309, 28.6139)

        assert distance_meters(a, b) != pytest.approx(distance_meters((28.6139, 77.209), (28.6139, 77.309)))

    def test_antipodal_points(self):
        d = distance_meters((0.0, 0.0), (180.0, 0.0))

        assert d == pytest.approx(math.pi * 6371000)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_passes_through(self, bad):
        assert math.isnan(distance_meters((bad, 0.0), (0.0, 0.0)))


class TestCoordinateValidation:
    """Tests for validate_coordinates and the Location model."""

    def test_valid_pair(self):
        assert validate_coordinates([77.209, 28.6139]) == [77.209, 28.6139]

    @pytest.mark.parametrize("value", [
        [77.2],
        [77.2, 28.6, 1.0],
        "77.2,28.6",
        [None, 28.6],
        [True, 28.6],
        [math.nan, 28.6],
        [181.0, 28.6],
        [77.2, -91.0],
    ])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            validate_coordinates(value)

    def test_location_exposes_lng_lat(self):
        location = Location(address="Main Gate", coordinates=[77.209, 28.6139])

        assert location.lng == 77.209
        assert location.lat == 28.6139
