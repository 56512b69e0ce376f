# tests/core/test_geo.py
"""
Тесты для геоутилит.
"""

from __future__ import annotations

import math

import pytest

from src.common.exceptions import ValidationFailureError
from src.core.geo import (
    Coordinates,
    calculate_distance,
    calculate_travel_distances,
    is_within_radius,
    parse_coordinates,
)

PICKUP = Coordinates(-34.77, -58.39)
DESTINATION = Coordinates(-34.92, -57.95)
ORIGIN = Coordinates(-34.76, -58.40)


class TestDistance:
    """Тесты расстояний."""

    def test_same_point(self) -> None:
        assert calculate_distance(PICKUP, PICKUP) == 0.0

    def test_symmetric(self) -> None:
        assert calculate_distance(PICKUP, DESTINATION) == calculate_distance(DESTINATION, PICKUP)

    @pytest.mark.parametrize(
        "a,b",
        [
            (Coordinates(-87.5, 0.0), Coordinates(87.5, 180.0)),
            (Coordinates(0.0, 0.0), Coordinates(0.0, 180.0)),
            (Coordinates(45.0, -90.0), Coordinates(-45.0, 90.0)),
            (Coordinates(90.0, 0.0), Coordinates(-90.0, 0.0)),
        ],
    )
    def test_antipodes(self, a: Coordinates, b: Coordinates) -> None:
        """Антиподы дают половину окружности, без ошибки домена."""
        assert calculate_distance(a, b) == pytest.approx(math.pi * 6371.0, abs=0.01)

    def test_origin_to_pickup(self) -> None:
        assert calculate_distance(ORIGIN, PICKUP) == pytest.approx(1.44, abs=0.01)

    def test_rounded_to_two_digits(self) -> None:
        distance = calculate_distance(PICKUP, DESTINATION)
        assert distance == round(distance, 2)

    def test_travel_distances(self) -> None:
        """Полный путь = база → подача + подача → назначение."""
        distances = calculate_travel_distances(ORIGIN, PICKUP, DESTINATION)

        assert distances.charter_to_pickup == pytest.approx(1.44, abs=0.01)
        assert distances.total == pytest.approx(44.92, abs=0.02)
        assert distances.total == round(distances.charter_to_pickup + distances.pickup_to_destination, 2)


class TestRadius:
    """Тесты проверки радиуса."""

    def test_inside(self) -> None:
        assert is_within_radius(ORIGIN, PICKUP, 5) is True

    def test_outside(self) -> None:
        assert is_within_radius(DESTINATION, PICKUP, 5) is False

    def test_boundary_inclusive(self) -> None:
        radius = calculate_distance(ORIGIN, PICKUP)
        assert is_within_radius(ORIGIN, PICKUP, radius) is True


class TestParseCoordinates:
    """Тесты разбора координат."""

    def test_strings(self) -> None:
        assert parse_coordinates("-34.77", "-58.39") == PICKUP

    @pytest.mark.parametrize(
        "lat,lon",
        [("abc", "1"), (None, 1.0), (float("nan"), 1.0), (91, 0), (0, -181), (float("inf"), 0)],
    )
    def test_invalid(self, lat, lon) -> None:
        with pytest.raises(ValidationFailureError):
            parse_coordinates(lat, lon)

    def test_limits_accepted(self) -> None:
        assert parse_coordinates(90, -180) == Coordinates(90.0, -180.0)



def _antipode(point: Coordinates) -> Coordinates:
    longitude = point.longitude + 180.0
    if longitude > 180.0:
        longitude -= 360.0
    return Coordinates(-point.latitude, longitude)


GRID = [Coordinates(lat * 7.5, lon * 22.5) for lat in range(-12, 13) for lon in range(-8, 9)]
PAIRS = [(p, q) for p in GRID[::13] for q in GRID[::17]] + [(p, _antipode(p)) for p in GRID]


class TestDistanceProperties:
    """Свойства расстояния на сетке точек, включая полюса и антимеридиан."""

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_symmetric_and_bounded(self, a: Coordinates, b: Coordinates) -> None:
        forward = calculate_distance(a, b)

        assert forward == calculate_distance(b, a)
        assert 0.0 <= forward <= round(math.pi * 6371.0, 2) + 0.01

    @pytest.mark.parametrize("point", GRID[::5])
    def test_zero_to_itself(self, point: Coordinates) -> None:
        assert calculate_distance(point, point) == 0.0

    def test_across_antimeridian(self) -> None:
        """Через 180-й меридиан расстояние короткое, а не вокруг света."""
        distance = calculate_distance(Coordinates(0.0, 179.9), Coordinates(0.0, -179.9))
        assert distance == pytest.approx(22.24, abs=0.01)
