# src/common/exceptions.py
"""
Доменные ошибки.
Каждая ошибка несёт машинно-проверяемый вид (kind) и сообщение для пользователя.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Базовая доменная ошибка."""

    kind: str = "domain_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Сериализует ошибку для ответа API."""
        return {
            "error_code": self.kind,
            "message": self.message,
            "details": self.details or None,
        }


class NotFoundError(DomainError):
    """Сущность не найдена (или удалена)."""
    kind = "not_found"


class ForbiddenError(DomainError):
    """Вызывающий не является допустимой стороной."""
    kind = "forbidden"


class InvalidStateError(DomainError):
    """Операция недопустима в текущем состоянии."""

    kind = "invalid_state"

    def __init__(self, message: str, current_state: str) -> None:
        super().__init__(
            f"{message} (текущее состояние: {current_state})",
            details={"current_state": current_state},
        )
        self.current_state = current_state


class ConflictError(DomainError):
    """Нарушение уникальности (повторная жалоба и т.п.)."""
    kind = "conflict"


class InsufficientFundsError(DomainError):
    """Недостаточно кредитов."""

    kind = "insufficient_funds"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Недостаточно кредитов. Требуется: {required}, доступно: {available}",
            details={"required": required, "available": available},
        )
        self.required = required
        self.available = available


class ValidationFailureError(DomainError):
    """Некорректные входные данные (координаты, даты, длина текста)."""
    kind = "validation_failure"
