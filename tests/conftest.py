# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("JWT_SECRET", "test-secret")

from src.common.constants import (
    ConversationStatus,
    MatchStatus,
    ReportStatus,
    TripStatus,
    UserRole,
)
from src.core.conversations.models import Conversation, Message
from src.core.matching.models import TravelMatch
from src.core.reports.models import Report
from src.core.trips.models import Trip
from src.core.users.models import CharterAvailability, UserAccount


# Точки сценария Буэнос-Айрес → Ла-Плата
PICKUP = (-34.77, -58.39)
DESTINATION = (-34.92, -57.95)
CHARTER_ORIGIN = (-34.76, -58.40)

USER_ID = 1
CHARTER_ID = 2
OTHER_USER_ID = 3
ADMIN_ID = 99


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "PROJECT_NAME": "flexpress_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "colored",
        "TIMEZONE": "America/Argentina/Buenos_Aires",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "flexpress_test",
        "DB_USER": "postgres",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "RABBITMQ_HOST": "localhost",
        "RABBITMQ_EXCHANGE": "flexpress.test",
        "DEFAULT_BASE_RATE_PER_KM": 15.0,
        "DEFAULT_MINIMUM_CHARGE": 50.0,
        "DEFAULT_WORKER_RATE": 75.0,
        "MATCH_TTL_MINUTES": 30,
        "CONVERSATION_TTL_HOURS": 5,
        "MESSAGE_MAX_LENGTH": 2000,
        "JWT_ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": 15,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

class FakeTransaction:
    """Асинхронный контекстный менеджер вместо db.transaction()."""

    def __init__(self, conn: AsyncMock) -> None:
        self.conn = conn
        self.exited_with: BaseException | None = None

    async def __aenter__(self) -> AsyncMock:
        return self.conn

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.exited_with = exc
        return False


@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    conn.fetchval = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    db.transaction = MagicMock(side_effect=lambda: FakeTransaction(mock_conn))
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.get_model = AsyncMock(return_value=None)
    redis.set_model = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=None)
    event_bus.is_connected = True
    return event_bus


@pytest.fixture
def mock_notifier() -> AsyncMock:
    """Мок realtime-нотификатора."""
    return AsyncMock()


# =============================================================================
# ФАБРИКИ МОДЕЛЕЙ
# =============================================================================

def _future(minutes: int = 30) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


@pytest.fixture
def make_user() -> Callable[..., UserAccount]:
    """Фабрика пользователей."""
    def factory(**overrides: Any) -> UserAccount:
        data: dict[str, Any] = {
            "id": USER_ID,
            "email": "client@example.com",
            "name": "Клиент",
            "role": UserRole.USER,
            "credits": 1000,
        }
        data.update(overrides)
        return UserAccount(**data)
    return factory


@pytest.fixture
def make_charter() -> Callable[..., UserAccount]:
    """Фабрика чартеров с базой рядом с точкой подачи."""
    def factory(**overrides: Any) -> UserAccount:
        data: dict[str, Any] = {
            "id": CHARTER_ID,
            "email": "charter@example.com",
            "name": "Чартер",
            "role": UserRole.CHARTER,
            "credits": 0,
            "is_verified": True,
            "origin_address": "Quilmes",
            "origin_latitude": CHARTER_ORIGIN[0],
            "origin_longitude": CHARTER_ORIGIN[1],
        }
        data.update(overrides)
        return UserAccount(**data)
    return factory


@pytest.fixture
def available() -> CharterAvailability:
    return CharterAvailability(charter_id=CHARTER_ID, is_available=True)


@pytest.fixture
def make_match() -> Callable[..., TravelMatch]:
    """Фабрика подборов."""
    def factory(**overrides: Any) -> TravelMatch:
        data: dict[str, Any] = {
            "id": 10,
            "user_id": USER_ID,
            "pickup_address": "Avellaneda",
            "pickup_latitude": PICKUP[0],
            "pickup_longitude": PICKUP[1],
            "destination_address": "La Plata",
            "destination_latitude": DESTINATION[0],
            "destination_longitude": DESTINATION[1],
            "max_radius_km": 30.0,
            "workers_count": 2,
            "status": MatchStatus.SEARCHING,
            "expires_at": _future(),
        }
        data.update(overrides)
        return TravelMatch(**data)
    return factory


@pytest.fixture
def make_trip() -> Callable[..., Trip]:
    """Фабрика поездок."""
    def factory(**overrides: Any) -> Trip:
        data: dict[str, Any] = {
            "id": 100,
            "match_id": 10,
            "user_id": USER_ID,
            "charter_id": CHARTER_ID,
            "address": "La Plata",
            "latitude": DESTINATION[0],
            "longitude": DESTINATION[1],
            "workers_count": 2,
            "estimated_credits": 824,
            "status": TripStatus.PENDING,
        }
        data.update(overrides)
        return Trip(**data)
    return factory


@pytest.fixture
def make_conversation() -> Callable[..., Conversation]:
    """Фабрика чатов."""
    def factory(**overrides: Any) -> Conversation:
        data: dict[str, Any] = {
            "id": 50,
            "match_id": 10,
            "user_id": USER_ID,
            "charter_id": CHARTER_ID,
            "status": ConversationStatus.ACTIVE,
            "expires_at": _future(300),
        }
        data.update(overrides)
        return Conversation(**data)
    return factory


@pytest.fixture
def make_message() -> Callable[..., Message]:
    def factory(**overrides: Any) -> Message:
        data: dict[str, Any] = {
            "id": 500,
            "conversation_id": 50,
            "sender_id": USER_ID,
            "content": "Здравствуйте",
        }
        data.update(overrides)
        return Message(**data)
    return factory


@pytest.fixture
def make_report() -> Callable[..., Report]:
    def factory(**overrides: Any) -> Report:
        data: dict[str, Any] = {
            "id": 7,
            "conversation_id": 50,
            "reporter_id": USER_ID,
            "reported_id": CHARTER_ID,
            "reason": "Грубость",
            "status": ReportStatus.PENDING,
        }
        data.update(overrides)
        return Report(**data)
    return factory
