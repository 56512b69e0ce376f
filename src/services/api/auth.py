# src/services/api/auth.py
"""
Идентификация вызывающего по JWT (Authorization: Bearer <token>).
В токене: sub — ID пользователя, role — роль.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.common.constants import UserRole

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Вызывающий пользователь."""
    user_id: int
    role: UserRole


def create_access_token(user_id: int, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """Выпускает JWT для пользователя."""
    from src.config import settings

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.auth.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": str(user_id), "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.auth.JWT_SECRET, algorithm=settings.auth.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Проверяет JWT; None если токен неверный или истёк."""
    from src.config import settings

    try:
        return jwt.decode(token, settings.auth.JWT_SECRET, algorithms=[settings.auth.JWT_ALGORITHM])
    except JWTError:
        return None


def user_from_token(token: Optional[str]) -> Optional[CurrentUser]:
    """Извлекает пользователя из токена; None если токен не годится."""
    if not token:
        return None
    payload = decode_token(token)
    if not payload or "sub" not in payload:
        return None
    try:
        return CurrentUser(user_id=int(payload["sub"]), role=UserRole(payload.get("role", UserRole.USER.value)))
    except (TypeError, ValueError):
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Зависимость FastAPI: 401 при отсутствии или неверном токене."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = user_from_token(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user


async def require_charter(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.CHARTER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Charter role required")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
