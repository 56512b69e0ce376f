# src/core/matching/service.py
"""
Сервис подбора чартеров.

Ведёт подбор по машине состояний:
searching → pending → {accepted, rejected}; accepted → completed;
любой не финальный → cancelled; searching → expired по истечении срока.
Каждый переход — условный UPDATE по ожидаемому статусу.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, Optional

from pydantic import BaseModel

from src.common.constants import MatchStatus, TypeMsg
from src.common.date_utils import add_minutes, is_past, now_local, parse_datetime
from src.common.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)
from src.common.logger import log_error, log_info, log_warning
from src.core.billing.service import CreditLedger
from src.core.conversations.models import Conversation
from src.core.geo import (
    Coordinates,
    calculate_travel_distances,
    is_within_radius,
    parse_coordinates,
)
from src.core.matching.models import (
    CharterCandidate,
    CreateMatchRequest,
    MatchCreationResult,
    TravelMatch,
)
from src.core.matching.repository import MatchRepository
from src.core.matching.state_machine import MatchStateMachine
from src.core.pricing import PricingConfigProvider, calculate_cost
from src.core.trips.models import Trip
from src.core.users.models import CharterAvailability, UserAccount
from src.core.users.repository import AvailabilityRepository, UserRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus, EventTypes, publish_event
from src.infra.redis_client import RedisClient

if TYPE_CHECKING:
    from src.core.conversations.service import ConversationService
    from src.services.realtime_ws.notifier import RealtimeNotifier


class MatchDetails(BaseModel):
    """Подбор со сводкой связанного чата."""
    match: TravelMatch
    conversation: Optional[Conversation] = None


class MatchingService:
    """
    Сервис подбора.

    Реализует:
    - Создание подбора и ранжирование кандидатов по расстоянию до подачи
    - Выбор чартера и ответ чартера
    - Создание поездки с резервированием кредитов
    - Доступность и базу чартера
    - Истечение поиска
    """

    def __init__(
        self,
        db: DatabaseManager,
        redis: Optional[RedisClient] = None,
        event_bus: Optional[EventBus] = None,
        notifier: Optional[RealtimeNotifier] = None,
        conversations: Optional[ConversationService] = None,
        pricing: Optional[PricingConfigProvider] = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            redis: Клиент Redis (кэш тарифов)
            event_bus: Шина событий
            notifier: Realtime-уведомления
            conversations: Сервис чатов (открытие чата при принятии)
            pricing: Загрузчик тарифов
        """
        from src.config import settings

        self._matches = MatchRepository(db)
        self._users = UserRepository(db)
        self._availability = AvailabilityRepository(db)
        self._ledger = CreditLedger(db)
        self._pricing = pricing or PricingConfigProvider(db, redis)
        self._event_bus = event_bus
        self._notifier = notifier
        self._conversations = conversations
        self._match_ttl_minutes = settings.matching.MATCH_TTL_MINUTES

    # =========================================================================
    # СОЗДАНИЕ И ПОИСК
    # =========================================================================

    async def create_match(self, user_id: int, request: CreateMatchRequest) -> MatchCreationResult:
        """
        Создаёт подбор и возвращает ранжированный список кандидатов.
        Чартер на этом шаге не назначается.

        Args:
            user_id: ID заказчика
            request: Параметры подбора

        Returns:
            Подбор в статусе searching и кандидаты, ближайшие к подаче сначала

        Raises:
            NotFoundError: Заказчик не найден
            ValidationFailureError: Некорректные координаты или дата в прошлом
        """
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Пользователь не найден")

        pickup = parse_coordinates(request.pickup_latitude, request.pickup_longitude)
        destination = parse_coordinates(request.destination_latitude, request.destination_longitude)

        scheduled_date = None
        if request.scheduled_date is not None:
            scheduled_date = parse_datetime(request.scheduled_date)
            if is_past(scheduled_date):
                raise ValidationFailureError("Дата поездки не может быть в прошлом")

        candidates = await self.find_available_charters(
            pickup,
            destination,
            request.max_radius_km,
            request.workers_count,
        )

        match = await self._matches.create(
            user_id=user_id,
            pickup_address=request.pickup_address,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            destination_address=request.destination_address,
            destination_latitude=destination.latitude,
            destination_longitude=destination.longitude,
            scheduled_date=scheduled_date,
            max_radius_km=request.max_radius_km,
            workers_count=request.workers_count,
            expires_at=add_minutes(self._match_ttl_minutes),
        )

        await log_info(
            f"Подбор {match.id} создан пользователем {user_id}: {len(candidates)} кандидатов "
            f"в радиусе {request.max_radius_km} км",
            type_msg=TypeMsg.INFO,
        )
        await publish_event(
            self._event_bus,
            EventTypes.MATCH_CREATED,
            {"match_id": match.id, "user_id": user_id, "candidates": len(candidates)},
        )

        return MatchCreationResult(match=match, candidates=candidates)

    async def find_available_charters(
        self,
        pickup: Coordinates,
        destination: Coordinates,
        max_radius_km: float,
        workers_count: int,
    ) -> list[CharterCandidate]:
        """
        Кандидаты в радиусе от точки подачи с расчётом стоимости.
        Тарифы загружаются один раз на весь список.

        Returns:
            Кандидаты по возрастанию расстояния база → подача
        """
        charters = await self._users.find_available_charters()
        if not charters:
            return []

        pricing = await self._pricing.load()

        candidates = []
        for charter in charters:
            origin = charter.origin
            if origin is None:
                continue

            if not is_within_radius(origin, pickup, max_radius_km):
                continue

            distances = calculate_travel_distances(origin, pickup, destination)

            candidates.append(CharterCandidate(
                charter_id=charter.id,
                charter_name=charter.name,
                charter_email=charter.email,
                charter_number=charter.number,
                charter_avatar=charter.avatar,
                origin_address=charter.origin_address,
                origin_latitude=origin.latitude,
                origin_longitude=origin.longitude,
                distance_to_pickup=distances.charter_to_pickup,
                total_distance=distances.total,
                estimated_credits=calculate_cost(distances.total, workers_count, pricing),
            ))

        candidates.sort(key=lambda c: c.distance_to_pickup)
        return candidates

    async def get_match_candidates(self, user_id: int, match_id: int) -> list[CharterCandidate]:
        """Обновлённый список кандидатов для подбора в статусе searching."""
        match = await self._get_owned_match(user_id, match_id)
        if match.status != MatchStatus.SEARCHING:
            raise InvalidStateError("Кандидаты доступны только во время поиска", match.status.value)

        return await self.find_available_charters(
            match.pickup,
            match.destination,
            match.max_radius_km,
            match.workers_count,
        )

    # =========================================================================
    # ПЕРЕХОДЫ СОСТОЯНИЙ
    # =========================================================================

    async def select_charter(self, user_id: int, match_id: int, charter_id: int) -> TravelMatch:
        """
        Назначает чартера: searching → pending.
        Расстояние и стоимость пересчитываются на момент выбора.

        Raises:
            NotFoundError: Подбор или чартер не найден
            ForbiddenError: Вызывающий не заказчик
            InvalidStateError: Подбор не в searching, срок истёк или чартер недоступен
        """
        match = await self._get_owned_match(user_id, match_id)
        if match.status != MatchStatus.SEARCHING:
            raise InvalidStateError("Выбрать чартера можно только во время поиска", match.status.value)

        if is_past(match.expires_at):
            await self._expire(match)
            raise InvalidStateError("Срок поиска истёк", MatchStatus.EXPIRED.value)

        charter = await self._get_charter(charter_id)
        availability = await self._availability.get(charter_id)
        origin = charter.origin
        if availability is None or not availability.is_available or origin is None:
            raise InvalidStateError("Чартер недоступен", "unavailable")

        pricing = await self._pricing.load()
        distances = calculate_travel_distances(origin, match.pickup, match.destination)
        credits = calculate_cost(distances.total, match.workers_count, pricing)

        updated = await self._matches.assign_charter(match_id, charter_id, distances.total, credits)
        if updated is None:
            await self._raise_lost_race(match_id, "Подбор уже изменён")

        await log_info(
            f"Подбор {match_id}: выбран чартер {charter_id}, {distances.total} км, {credits} кредитов",
            type_msg=TypeMsg.INFO,
        )
        await publish_event(
            self._event_bus,
            EventTypes.MATCH_CHARTER_SELECTED,
            {"match_id": match_id, "charter_id": charter_id, "estimated_credits": credits},
        )
        await self._notify(charter_id, updated)
        return updated

    async def respond_to_match(self, charter_id: int, match_id: int, accept: bool) -> TravelMatch:
        """
        Ответ чартера: pending → accepted | rejected.

        При принятии открывает чат; ошибка открытия чата логируется
        и не отменяет принятие. Уведомление получает только заказчик.

        Raises:
            NotFoundError: Подбор не найден
            ForbiddenError: Вызывающий не назначенный чартер
            InvalidStateError: Подбор не в pending
        """
        match = await self._get_active_match(match_id)
        if match.status != MatchStatus.PENDING:
            raise InvalidStateError("Ответить можно только на подбор в статусе pending", match.status.value)
        if match.charter_id != charter_id:
            raise ForbiddenError("Подбор назначен другому чартеру")

        new_status = MatchStatus.ACCEPTED if accept else MatchStatus.REJECTED
        updated = await self._matches.transition(match_id, [MatchStatus.PENDING], new_status)
        if updated is None:
            await self._raise_lost_race(match_id, "Подбор уже изменён")

        await log_info(f"Подбор {match_id}: чартер {charter_id} → {new_status.value}", type_msg=TypeMsg.INFO)

        if accept:
            updated = await self._open_conversation(updated)

        await publish_event(
            self._event_bus,
            EventTypes.MATCH_ACCEPTED if accept else EventTypes.MATCH_REJECTED,
            {"match_id": match_id, "charter_id": charter_id, "conversation_id": updated.conversation_id},
        )
        await self._notify(updated.user_id, updated)
        return updated

    async def create_trip_from_match(self, user_id: int, match_id: int) -> Trip:
        """
        Создаёт поездку из принятого подбора.
        Стоимость берётся из подбора (зафиксирована при выборе чартера).

        Raises:
            NotFoundError: Подбор или заказчик не найден
            ForbiddenError: Вызывающий не заказчик
            InvalidStateError: Подбор не в accepted или без чартера
            ConflictError: Поездка уже создана
            InsufficientFundsError: Баланса не хватает (ничего не изменено)
        """
        match = await self._get_owned_match(user_id, match_id)
        if match.status != MatchStatus.ACCEPTED:
            raise InvalidStateError("Поездку можно создать только из принятого подбора", match.status.value)
        if match.charter_id is None:
            raise InvalidStateError("Чартер не назначен", match.status.value)
        if match.trip_id is not None:
            raise ConflictError("Для этого подбора уже создана поездка")

        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Пользователь не найден")

        required = match.estimated_credits or 0
        if user.credits < required:
            raise InsufficientFundsError(required=required, available=user.credits)

        trip = await self._ledger.create_trip_from_match(match)

        await publish_event(
            self._event_bus,
            EventTypes.MATCH_TRIP_CREATED,
            {"match_id": match_id, "trip_id": trip.id, "estimated_credits": trip.estimated_credits},
        )
        completed = match.model_copy(update={"status": MatchStatus.COMPLETED, "trip_id": trip.id})
        await self._notify(match.charter_id, completed)
        return trip

    async def cancel_match(self, user_id: int, match_id: int) -> TravelMatch:
        """
        Отмена подбора заказчиком.
        Недоступна для completed и cancelled. Активный чат принятого подбора
        закрывается без влияния на результат отмены.
        """
        match = await self._get_owned_match(user_id, match_id)
        if not MatchStateMachine.can_transition(match.status, MatchStatus.CANCELLED):
            raise InvalidStateError("Подбор нельзя отменить", match.status.value)

        updated = await self._matches.transition(
            match_id,
            MatchStateMachine.sources_for(MatchStatus.CANCELLED),
            MatchStatus.CANCELLED,
        )
        if updated is None:
            await self._raise_lost_race(match_id, "Подбор нельзя отменить")

        await log_info(f"Подбор {match_id} отменён пользователем {user_id}", type_msg=TypeMsg.INFO)

        if match.status == MatchStatus.ACCEPTED and match.conversation_id and self._conversations:
            try:
                await self._conversations.close_conversation(match.conversation_id, user_id)
            except Exception as e:
                await log_warning(f"Не удалось закрыть чат {match.conversation_id} отменённого подбора: {e}")

        await publish_event(
            self._event_bus,
            EventTypes.MATCH_CANCELLED,
            {"match_id": match_id, "user_id": user_id},
        )
        if updated.charter_id is not None:
            await self._notify(updated.charter_id, updated)
        return updated

    async def expire_stale_matches(self) -> int:
        """
        Переводит в expired подборы, не получившие чартера за отведённое время.

        Returns:
            Количество истёкших подборов
        """
        expired = await self._matches.expire_stale(now_local())

        for match in expired:
            await publish_event(
                self._event_bus,
                EventTypes.MATCH_EXPIRED,
                {"match_id": match.id, "user_id": match.user_id},
            )
            await self._notify(match.user_id, match)

        if expired:
            await log_info(f"Истекло подборов: {len(expired)}", type_msg=TypeMsg.INFO)
        return len(expired)

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_match(self, user_id: int, match_id: int) -> MatchDetails:
        """Подбор для заказчика или назначенного чартера вместе с чатом."""
        match = await self._get_active_match(match_id)
        if not match.is_party(user_id):
            raise ForbiddenError("Нет доступа к подбору")

        conversation = None
        if match.conversation_id is not None and self._conversations is not None:
            conversation = await self._conversations.get_by_id(match.conversation_id)
        return MatchDetails(match=match, conversation=conversation)

    async def list_user_matches(self, user_id: int, status: Optional[MatchStatus] = None) -> list[TravelMatch]:
        return await self._matches.list_by_user(user_id, status)

    async def list_charter_matches(self, charter_id: int, status: Optional[MatchStatus] = None) -> list[TravelMatch]:
        return await self._matches.list_by_charter(charter_id, status)

    # =========================================================================
    # ЧАРТЕР: ДОСТУПНОСТЬ И БАЗА
    # =========================================================================

    async def toggle_availability(self, charter_id: int, is_available: bool) -> CharterAvailability:
        """
        Включает или выключает доступность чартера.

        Raises:
            NotFoundError: Пользователь не чартер
            ForbiddenError: Чартер не верифицирован (при включении)
            ValidationFailureError: База не задана (при включении)
        """
        charter = await self._get_charter(charter_id)

        if is_available:
            if not charter.is_verified:
                raise ForbiddenError("Чартер не верифицирован")
            if charter.origin is None:
                raise ValidationFailureError("Сначала укажите адрес базы")

        availability = await self._availability.upsert(charter_id, is_available, now_local())

        await log_info(
            f"Чартер {charter_id}: доступность {'включена' if is_available else 'выключена'}",
            type_msg=TypeMsg.INFO,
        )
        await publish_event(
            self._event_bus,
            EventTypes.CHARTER_AVAILABILITY_CHANGED,
            {"charter_id": charter_id, "is_available": is_available},
        )
        return availability

    async def get_availability(self, charter_id: int) -> CharterAvailability:
        """Доступность чартера; без строки — недоступен."""
        await self._get_charter(charter_id)
        availability = await self._availability.get(charter_id)
        return availability or CharterAvailability(charter_id=charter_id, is_available=False)

    async def update_charter_origin(
        self,
        charter_id: int,
        address: str,
        latitude: float | str,
        longitude: float | str,
    ) -> UserAccount:
        """Задаёт адрес и координаты базы чартера."""
        await self._get_charter(charter_id)

        address = (address or "").strip()
        if not address:
            raise ValidationFailureError("Адрес базы не может быть пустым")
        origin = parse_coordinates(latitude, longitude)

        updated = await self._users.update_origin(charter_id, address, origin.latitude, origin.longitude)
        if updated is None:
            raise NotFoundError("Чартер не найден")

        await log_info(f"Чартер {charter_id}: база обновлена ({address})", type_msg=TypeMsg.INFO)
        return updated

    # =========================================================================
    # ВСПОМОГАТЕЛЬНЫЕ
    # =========================================================================

    async def _get_active_match(self, match_id: int) -> TravelMatch:
        match = await self._matches.get_by_id(match_id)
        if match is None:
            raise NotFoundError("Подбор не найден")
        return match

    async def _get_owned_match(self, user_id: int, match_id: int) -> TravelMatch:
        match = await self._get_active_match(match_id)
        if match.user_id != user_id:
            raise ForbiddenError("Подбор принадлежит другому пользователю")
        return match

    async def _get_charter(self, charter_id: int) -> UserAccount:
        charter = await self._users.get_by_id(charter_id)
        if charter is None or not charter.is_charter:
            raise NotFoundError("Чартер не найден")
        return charter

    async def _raise_lost_race(self, match_id: int, message: str) -> NoReturn:
        """Перечитывает подбор после неуспешного условного UPDATE."""
        current = await self._matches.get_by_id(match_id)
        if current is None:
            raise NotFoundError("Подбор не найден")
        raise InvalidStateError(message, current.status.value)

    async def _expire(self, match: TravelMatch) -> None:
        expired = await self._matches.transition(match.id, [MatchStatus.SEARCHING], MatchStatus.EXPIRED)
        if expired is None:
            return
        await log_info(f"Подбор {match.id} истёк", type_msg=TypeMsg.INFO)
        await publish_event(
            self._event_bus,
            EventTypes.MATCH_EXPIRED,
            {"match_id": match.id, "user_id": match.user_id},
        )

    async def _open_conversation(self, match: TravelMatch) -> TravelMatch:
        """Открывает чат принятого подбора. Ошибка не влияет на принятие."""
        if self._conversations is None:
            return match
        try:
            conversation = await self._conversations.create_conversation(match.id)
            await self._matches.set_conversation(match.id, conversation.id)
        except Exception as e:
            await log_error(f"Не удалось открыть чат для подбора {match.id}: {e}", exc_info=True)
            return match
        return match.model_copy(update={"conversation_id": conversation.id})

    async def _notify(self, user_id: int, match: TravelMatch) -> None:
        if self._notifier is None:
            return
        await self._notifier.notify_match_update(user_id, match.model_dump(mode="json"))
