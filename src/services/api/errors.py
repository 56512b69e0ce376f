# src/services/api/errors.py
"""
Преобразование доменных ошибок в HTTP ответы.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)
from src.common.logger import log_info
from src.shared.models.common import ErrorResponse

STATUS_BY_ERROR: dict[type[DomainError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    InsufficientFundsError: status.HTTP_400_BAD_REQUEST,
    ValidationFailureError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def status_for(error: DomainError) -> int:
    """HTTP статус для доменной ошибки."""
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code = status_for(exc)
    await log_info(
        f"{request.method} {request.url.path} → {code} {exc.kind}: {exc.message}",
        type_msg=TypeMsg.DEBUG,
    )
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
