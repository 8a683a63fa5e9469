import pytest

from archimap.app.services.geo import EARTH_RADIUS_KM, bounding_box, distance_km

TOKYO_STATION = (35.6812, 139.7671)
OSAKA_STATION = (34.7025, 135.4959)


def test_distance_is_zero_for_the_same_point():
    assert distance_km(*TOKYO_STATION, *TOKYO_STATION) == pytest.approx(0.0)


def test_distance_between_tokyo_and_osaka():
    assert distance_km(*TOKYO_STATION, *OSAKA_STATION) == pytest.approx(403, rel=0.02)


def test_distance_is_symmetric():
    forward = distance_km(*TOKYO_STATION, *OSAKA_STATION)
    backward = distance_km(*OSAKA_STATION, *TOKYO_STATION)

    assert forward == pytest.approx(backward)


def test_one_degree_of_latitude_uses_mean_earth_radius():
    expected = 2 * 3.141592653589793 * EARTH_RADIUS_KM / 360

    assert distance_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-6)


def test_bounding_box_encloses_the_radius():
    lat, lng = TOKYO_STATION
    lat_min, lat_max, lng_min, lng_max = bounding_box(lat, lng, 10.0)

    assert distance_km(lat, lng, lat_max, lng) == pytest.approx(10.0, rel=1e-6)
    assert distance_km(lat, lng, lat_min, lng) == pytest.approx(10.0, rel=1e-6)
    assert distance_km(lat, lng, lat, lng_max) == pytest.approx(10.0, rel=1e-3)
    assert lng_max - lng > lat_max - lat
    assert lng_min < lng < lng_max


def test_bounding_box_spans_all_longitudes_at_the_pole():
    _, _, lng_min, lng_max = bounding_box(90.0, 0.0, 5.0)

    assert lng_min == -180.0
    assert lng_max == 180.0
