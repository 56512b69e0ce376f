# src/core/users/models.py
"""
Модели пользователей и доступности чартеров.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import LifecycleState, UserRole
from src.core.geo import Coordinates


class UserAccount(BaseModel):
    """Пользователь (клиент, чартер или администратор)."""

    id: int = Field(..., description="ID пользователя")
    email: str = Field(..., description="Email")
    name: str = Field(..., description="Имя")
    number: Optional[str] = Field(None, description="Телефон")
    avatar: Optional[str] = Field(None, description="URL аватара")
    role: UserRole = Field(UserRole.USER, description="Роль")
    credits: int = Field(0, ge=0, description="Баланс кредитов")
    is_verified: bool = Field(False, description="Чартер верифицирован")

    origin_address: Optional[str] = Field(None, description="Адрес базы чартера")
    origin_latitude: Optional[float] = Field(None, description="Широта базы")
    origin_longitude: Optional[float] = Field(None, description="Долгота базы")

    lifecycle_state: LifecycleState = Field(LifecycleState.ACTIVE, description="Состояние записи")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_usable(self) -> bool:
        """Запись не удалена."""
        return self.lifecycle_state == LifecycleState.ACTIVE

    @property
    def is_charter(self) -> bool:
        return self.role == UserRole.CHARTER

    @property
    def origin(self) -> Optional[Coordinates]:
        """Координаты базы чартера или None, если не заданы."""
        if self.origin_latitude is None or self.origin_longitude is None:
            return None
        return Coordinates(latitude=self.origin_latitude, longitude=self.origin_longitude)

    def public_profile(self) -> dict:
        """Данные, которые видит другая сторона подбора."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "number": self.number,
            "avatar": self.avatar,
        }


class CharterAvailability(BaseModel):
    """Доступность чартера. Отсутствие строки означает «недоступен»."""

    charter_id: int
    is_available: bool = False
    last_toggled_at: Optional[datetime] = None

    class Config:
        from_attributes = True
