# src/core/trips/__init__.py
"""
Домен поездок.
Сервис (src.core.trips.service) импортируется напрямую: он зависит от биллинга.
"""

from src.core.trips.models import FeedbackEligibility, Trip

__all__ = [
    "FeedbackEligibility",
    "Trip",
]
