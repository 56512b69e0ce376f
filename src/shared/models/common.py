# src/shared/models/common.py
"""
Общие модели ответов API.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Успешный ответ: {"success": true, "message"?, "data": ...}."""

    success: bool = True
    message: Optional[str] = None
    data: T

    @classmethod
    def ok(cls, data: Any, message: Optional[str] = None) -> "ApiResponse":
        return cls(data=data, message=message)


class ErrorResponse(BaseModel):
    """Стандартный ответ с ошибкой."""

    error_code: str
    message: str
    details: dict[str, Any] | None = None


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded, unhealthy
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    realtime: dict[str, int] = Field(default_factory=dict)
