# src/core/geo/__init__.py
"""
Геоутилиты.
Расстояния, радиус поиска, разбор координат.
"""

from src.core.geo.distance import (
    Coordinates,
    TravelDistances,
    calculate_distance,
    calculate_travel_distances,
    is_within_radius,
    parse_coordinates,
)

__all__ = [
    "Coordinates",
    "TravelDistances",
    "calculate_distance",
    "calculate_travel_distances",
    "is_within_radius",
    "parse_coordinates",
]
