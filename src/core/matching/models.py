# src/core/matching/models.py
"""
Модели подбора чартера (TravelMatch).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from src.common.constants import LifecycleState, MatchStatus
from src.core.geo import Coordinates


class TravelMatch(BaseModel):
    """Заявка на переезд, проходящая через машину состояний подбора."""

    id: int = Field(..., description="ID подбора")
    user_id: int = Field(..., description="ID заказчика")
    charter_id: Optional[int] = Field(None, description="Выбранный чартер (с pending)")

    # Локации
    pickup_address: str = Field(..., description="Адрес подачи")
    pickup_latitude: float = Field(..., description="Широта подачи")
    pickup_longitude: float = Field(..., description="Долгота подачи")

    destination_address: str = Field(..., description="Адрес назначения")
    destination_latitude: float = Field(..., description="Широта назначения")
    destination_longitude: float = Field(..., description="Долгота назначения")

    # Параметры заявки
    scheduled_date: Optional[datetime] = Field(None, description="Запланированное время")
    max_radius_km: float = Field(30.0, description="Радиус поиска (км)")
    workers_count: int = Field(0, ge=0, description="Количество грузчиков")

    # Расчёты (заполняются при выборе чартера)
    distance_km: Optional[float] = Field(None, description="Полный путь чартера (км)")
    estimated_credits: Optional[int] = Field(None, description="Стоимость в кредитах")

    # Статус
    status: MatchStatus = Field(MatchStatus.SEARCHING, description="Статус подбора")
    expires_at: datetime = Field(..., description="Окончание поиска")

    # Связи
    trip_id: Optional[int] = Field(None, description="Созданная поездка")
    conversation_id: Optional[int] = Field(None, description="Чат подбора")

    lifecycle_state: LifecycleState = Field(LifecycleState.ACTIVE, description="Состояние записи")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def pickup(self) -> Coordinates:
        return Coordinates(latitude=self.pickup_latitude, longitude=self.pickup_longitude)

    @property
    def destination(self) -> Coordinates:
        return Coordinates(latitude=self.destination_latitude, longitude=self.destination_longitude)

    def is_party(self, user_id: int) -> bool:
        """Пользователь — заказчик или назначенный чартер."""
        return user_id == self.user_id or (self.charter_id is not None and user_id == self.charter_id)


class CharterCandidate(BaseModel):
    """Кандидат-чартер с расчётом расстояний и стоимости."""

    charter_id: int
    charter_name: str
    charter_email: str
    charter_number: Optional[str] = None
    charter_avatar: Optional[str] = None
    origin_address: Optional[str] = None
    origin_latitude: float
    origin_longitude: float
    distance_to_pickup: float = Field(..., description="База → подача (км)")
    total_distance: float = Field(..., description="База → подача → назначение (км)")
    estimated_credits: int = Field(..., description="Стоимость в кредитах")


class CreateMatchRequest(BaseModel):
    """Данные для создания подбора."""

    pickup_address: str = Field(..., min_length=1, max_length=500)
    pickup_latitude: Union[float, str]
    pickup_longitude: Union[float, str]

    destination_address: str = Field(..., min_length=1, max_length=500)
    destination_latitude: Union[float, str]
    destination_longitude: Union[float, str]

    scheduled_date: Optional[Union[datetime, str]] = None
    max_radius_km: float = Field(30.0, ge=1, le=100, description="Радиус поиска (км)")
    workers_count: int = Field(0, ge=0, le=10, description="Количество грузчиков")

    @field_validator("pickup_address", "destination_address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Адрес не может быть пустым")
        return value


class MatchCreationResult(BaseModel):
    """Результат создания подбора: заявка и ранжированные кандидаты."""

    match: TravelMatch
    candidates: list[CharterCandidate] = Field(default_factory=list)

