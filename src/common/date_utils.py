# src/common/date_utils.py
"""
Работа со временем в едином часовом поясе проекта.
Все расчёты истечения (подбор, чат) ведутся в settings.domain.TIMEZONE.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from src.common.exceptions import ValidationFailureError


@lru_cache()
def get_timezone() -> ZoneInfo:
    """Возвращает часовой пояс проекта."""
    from src.config import settings
    return ZoneInfo(settings.domain.TIMEZONE)


def now_local() -> datetime:
    """Текущее время (aware) в часовом поясе проекта."""
    return datetime.now(get_timezone())


def add_minutes(minutes: int, base: datetime | None = None) -> datetime:
    """Возвращает base (или сейчас) + minutes."""
    return (base or now_local()) + timedelta(minutes=minutes)


def add_hours(hours: int, base: datetime | None = None) -> datetime:
    """Возвращает base (или сейчас) + hours."""
    return (base or now_local()) + timedelta(hours=hours)


def to_local(value: datetime) -> datetime:
    """
    Приводит datetime к часовому поясу проекта.
    Naive значения считаются уже заданными в часовом поясе проекта.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=get_timezone())
    return value.astimezone(get_timezone())


def parse_datetime(value: str | datetime) -> datetime:
    """
    Парсит дату в формате ISO-8601.

    Args:
        value: Строка или datetime

    Returns:
        Aware datetime в часовом поясе проекта

    Raises:
        ValidationFailureError: Если строка не является датой
    """
    if isinstance(value, datetime):
        return to_local(value)

    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationFailureError(f"Некорректная дата: {value!r}")

    return to_local(parsed)


def is_past(value: datetime) -> bool:
    """Проверяет, что момент уже наступил."""
    return to_local(value) <= now_local()
