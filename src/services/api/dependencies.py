# src/services/api/dependencies.py
"""
Зависимости API: инфраструктура, реестр соединений и доменные сервисы.
Сервисы создаются один раз в lifespan и отдаются через Depends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient
from src.infra.event_bus import EventBus
from src.services.realtime_ws.connection_manager import ConnectionRegistry
from src.services.realtime_ws.notifier import RealtimeNotifier

if TYPE_CHECKING:
    from src.core.conversations.service import ConversationService
    from src.core.matching.service import MatchingService
    from src.core.reports.service import ReportService
    from src.core.trips.service import TripService


_db: Optional[DatabaseManager] = None
_redis: Optional[RedisClient] = None
_event_bus: Optional[EventBus] = None
_registry: Optional[ConnectionRegistry] = None
_notifier: Optional[RealtimeNotifier] = None
_conversation_service: Optional["ConversationService"] = None
_matching_service: Optional["MatchingService"] = None
_trip_service: Optional["TripService"] = None
_report_service: Optional["ReportService"] = None


def build_services(
    db: DatabaseManager,
    redis: Optional[RedisClient] = None,
    event_bus: Optional[EventBus] = None,
    registry: Optional[ConnectionRegistry] = None,
) -> None:
    """
    Собирает граф сервисов поверх готовой инфраструктуры.

    Args:
        db: Менеджер БД
        redis: Redis клиент (кэш тарифов)
        event_bus: Шина событий (None — события не публикуются)
        registry: Реестр соединений (по умолчанию новый)
    """
    global _db, _redis, _event_bus, _registry, _notifier
    global _conversation_service, _matching_service, _trip_service, _report_service

    from src.core.conversations.service import ConversationService
    from src.core.matching.service import MatchingService
    from src.core.reports.service import ReportService
    from src.core.trips.service import TripService

    _db = db
    _redis = redis
    _event_bus = event_bus
    _registry = registry or ConnectionRegistry()
    _notifier = RealtimeNotifier(_registry)

    _conversation_service = ConversationService(db, notifier=_notifier, event_bus=event_bus)
    _matching_service = MatchingService(
        db,
        redis=redis,
        event_bus=event_bus,
        notifier=_notifier,
        conversations=_conversation_service,
    )
    _trip_service = TripService(db, event_bus=event_bus, notifier=_notifier)
    _report_service = ReportService(db, _conversation_service, event_bus=event_bus)


async def init_dependencies() -> None:
    """Инициализация всех зависимостей сервиса."""
    from src.common.logger import log_info
    from src.common.constants import TypeMsg
    from src.infra.database import get_db, init_db
    from src.infra.redis_client import get_redis, init_redis
    from src.infra.event_bus import get_event_bus, init_event_bus

    await init_db()
    await init_redis()
    await init_event_bus()

    build_services(get_db(), get_redis(), get_event_bus())

    await log_info("Сервисы API инициализированы", type_msg=TypeMsg.INFO)


async def close_dependencies() -> None:
    """Закрытие всех ресурсов."""
    from src.infra.database import close_db
    from src.infra.redis_client import close_redis
    from src.infra.event_bus import close_event_bus

    await close_event_bus()
    await close_redis()
    await close_db()


async def get_db() -> DatabaseManager:
    if _db is None:
        raise RuntimeError("DatabaseManager не инициализирован")
    return _db


async def get_redis() -> Optional[RedisClient]:
    return _redis


async def get_event_bus() -> Optional[EventBus]:
    return _event_bus


async def get_registry() -> ConnectionRegistry:
    if _registry is None:
        raise RuntimeError("ConnectionRegistry не инициализирован")
    return _registry


async def get_notifier() -> RealtimeNotifier:
    if _notifier is None:
        raise RuntimeError("RealtimeNotifier не инициализирован")
    return _notifier


async def get_conversation_service() -> "ConversationService":
    if _conversation_service is None:
        raise RuntimeError("ConversationService не инициализирован")
    return _conversation_service


async def get_matching_service() -> "MatchingService":
    if _matching_service is None:
        raise RuntimeError("MatchingService не инициализирован")
    return _matching_service


async def get_trip_service() -> "TripService":
    if _trip_service is None:
        raise RuntimeError("TripService не инициализирован")
    return _trip_service


async def get_report_service() -> "ReportService":
    if _report_service is None:
        raise RuntimeError("ReportService не инициализирован")
    return _report_service
