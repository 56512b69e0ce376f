# tests/common/test_exceptions.py
"""
Тесты для доменных ошибок.
"""

import pytest

from src.common.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)


class TestDomainErrors:
    """Тесты DomainError и наследников."""

    @pytest.mark.parametrize(
        "error_cls,kind",
        [
            (NotFoundError, "not_found"),
            (ForbiddenError, "forbidden"),
            (ConflictError, "conflict"),
            (ValidationFailureError, "validation_failure"),
        ],
    )
    def test_kinds(self, error_cls, kind) -> None:
        error = error_cls("Сообщение")

        assert isinstance(error, DomainError)
        assert error.to_dict() == {"error_code": kind, "message": "Сообщение", "details": None}

    def test_invalid_state_carries_current_state(self) -> None:
        error = InvalidStateError("Подбор не ожидает ответа", "searching")

        assert error.current_state == "searching"
        assert "searching" in error.message
        assert error.to_dict()["details"] == {"current_state": "searching"}
        assert error.to_dict()["error_code"] == "invalid_state"

    def test_insufficient_funds(self) -> None:
        error = InsufficientFundsError(required=824, available=500)

        assert error.required == 824
        assert error.available == 500
        assert error.to_dict()["details"] == {"required": 824, "available": 500}
        assert "824" in str(error)
