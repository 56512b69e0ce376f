# src/core/users/__init__.py
"""
Домен пользователей.
Адаптеры к справочнику пользователей и доступности чартеров.
"""

from src.core.users.models import CharterAvailability, UserAccount
from src.core.users.repository import AvailabilityRepository, UserRepository

__all__ = [
    "CharterAvailability",
    "UserAccount",
    "AvailabilityRepository",
    "UserRepository",
]
