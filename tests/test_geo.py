"""
Unit tests for haversine distances.
"""
import pytest

from helpix.services.geo import distance_km, distances_km

PARIS = (48.8566, 2.3522)
LYON = (45.7640, 4.8357)


class TestDistance:
    """Test single-pair great-circle distance."""

    def test_identity_is_zero(self):
        assert distance_km(*PARIS, *PARIS) == 0.0

    def test_symmetry(self):
        assert distance_km(*PARIS, *LYON) == pytest.approx(distance_km(*LYON, *PARIS))

    def test_paris_to_lyon(self):
        """Paris-Lyon is about 392 km as the crow flies."""
        assert distance_km(*PARIS, *LYON) == pytest.approx(392, abs=2)

    def test_short_distance_within_same_block(self):
        d = distance_km(48.8566, 2.3522, 48.8570, 2.3530)
        assert 0.05 < d < 0.1

    def test_antipodal_points_do_not_fail(self):
        d = distance_km(0, 0, 0, 180)
        assert d == pytest.approx(3.141592653589793 * 6371.0, rel=1e-6)

    def test_never_negative(self):
        assert distance_km(-33.87, 151.21, 51.5, -0.12) > 0


class TestVectorisedDistances:
    """Test one-to-many distances."""

    def test_matches_scalar_version(self):
        lats = [LYON[0], 48.8570, PARIS[0]]
        lons = [LYON[1], 2.3530, PARIS[1]]

        result = distances_km(*PARIS, lats, lons)

        for value, lat, lon in zip(result, lats, lons):
            assert value == pytest.approx(distance_km(*PARIS, lat, lon), rel=1e-9, abs=1e-9)

    def test_empty_input(self):
        assert len(distances_km(*PARIS, [], [])) == 0
