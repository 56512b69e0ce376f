# src/core/trips/models.py
"""
Модели поездок.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import LifecycleState, TripStatus


class Trip(BaseModel):
    """Поездка, созданная из принятого подбора."""

    id: int = Field(..., description="ID поездки")
    match_id: int = Field(..., description="Исходный подбор")
    user_id: int = Field(..., description="Заказчик")
    charter_id: int = Field(..., description="Чартер")

    address: str = Field(..., description="Адрес назначения")
    latitude: float = Field(..., description="Широта назначения")
    longitude: float = Field(..., description="Долгота назначения")

    workers_count: int = Field(0, ge=0)
    scheduled_date: Optional[datetime] = None
    estimated_credits: int = Field(..., ge=0, description="Зарезервированные кредиты")

    status: TripStatus = Field(TripStatus.PENDING, description="Статус поездки")
    charter_completed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    lifecycle_state: LifecycleState = Field(LifecycleState.ACTIVE)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.user_id, self.charter_id)

    def counterpart_of(self, user_id: int) -> int:
        """Другая сторона поездки."""
        return self.charter_id if user_id == self.user_id else self.user_id


class FeedbackEligibility(BaseModel):
    """Может ли пользователь оставить отзыв по поездке."""

    can_give: bool
    reason: Optional[str] = None
    trip_id: Optional[int] = None
    to_user_id: Optional[int] = None
