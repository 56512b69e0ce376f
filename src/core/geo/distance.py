# src/core/geo/distance.py
"""
Геометрия на сфере: расстояние по формуле Haversine, проверка радиуса,
разбор координат. Чистые функции без состояния.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from src.common.exceptions import ValidationFailureError

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """Точка (градусы)."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class TravelDistances:
    """Плечи маршрута чартера: база → подача → назначение (км)."""
    charter_to_pickup: float
    pickup_to_destination: float
    total: float


def calculate_distance(a: Coordinates, b: Coordinates) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.

    Returns:
        Расстояние, округлённое до 2 знаков
    """
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) *
         math.sin(dlon / 2) ** 2)

    # Для антиподов ошибка округления выводит h за 1
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return round(EARTH_RADIUS_KM * c, 2)


def calculate_travel_distances(
    charter_origin: Coordinates,
    pickup: Coordinates,
    destination: Coordinates,
) -> TravelDistances:
    """
    Считает полный путь чартера.
    Каждое плечо и сумма округляются независимо.
    """
    to_pickup = calculate_distance(charter_origin, pickup)
    to_destination = calculate_distance(pickup, destination)
    return TravelDistances(
        charter_to_pickup=to_pickup,
        pickup_to_destination=to_destination,
        total=round(to_pickup + to_destination, 2),
    )


def is_within_radius(point: Coordinates, center: Coordinates, radius_km: float) -> bool:
    """Точка в радиусе от центра (граница включительно)."""
    return calculate_distance(point, center) <= radius_km


def parse_coordinates(latitude: float | str | None, longitude: float | str | None) -> Coordinates:
    """
    Разбирает координаты из чисел или строк.

    Raises:
        ValidationFailureError: Не число, NaN/inf или вне допустимого диапазона
    """
    try:
        lat = float(latitude)  # type: ignore[arg-type]
        lon = float(longitude)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationFailureError(f"Некорректные координаты: {latitude!r}, {longitude!r}")

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValidationFailureError(f"Некорректные координаты: {latitude!r}, {longitude!r}")
    if not -90.0 <= lat <= 90.0:
        raise ValidationFailureError(f"Широта вне диапазона [-90, 90]: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise ValidationFailureError(f"Долгота вне диапазона [-180, 180]: {lon}")

    return Coordinates(latitude=lat, longitude=lon)

