# src/core/trips/service.py
"""
Сервис поездок.

Завершение — двухшаговое подтверждение: чартер отмечает выполнение
(pending → charter_completed), заказчик подтверждает
(charter_completed → completed), и только тогда кредиты уходят чартеру.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.common.constants import TripStatus, TypeMsg
from src.common.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from src.common.logger import log_info
from src.core.billing.service import CreditLedger
from src.core.trips.models import FeedbackEligibility, Trip
from src.core.trips.repository import TripRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus, EventTypes, publish_event

if TYPE_CHECKING:
    from src.services.realtime_ws.notifier import RealtimeNotifier


class TripService:
    """Сервис поездок."""

    def __init__(
        self,
        db: DatabaseManager,
        event_bus: Optional[EventBus] = None,
        notifier: Optional[RealtimeNotifier] = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            event_bus: Шина событий
            notifier: Realtime-уведомления
        """
        self._repo = TripRepository(db)
        self._ledger = CreditLedger(db)
        self._event_bus = event_bus
        self._notifier = notifier

    async def get_trip(self, trip_id: int, user_id: int) -> Trip:
        """Поездка для одной из сторон."""
        trip = await self._repo.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Поездка не найдена")
        if not trip.is_party(user_id):
            raise ForbiddenError("Нет доступа к поездке")
        return trip

    async def list_user_trips(self, user_id: int) -> list[Trip]:
        return await self._repo.list_by_user(user_id)

    async def charter_complete(self, trip_id: int, charter_id: int) -> Trip:
        """
        Чартер отмечает поездку выполненной: pending → charter_completed.

        Raises:
            ForbiddenError: Вызывающий не чартер поездки
            InvalidStateError: Поездка не в pending
        """
        trip = await self.get_trip(trip_id, charter_id)
        if trip.charter_id != charter_id:
            raise ForbiddenError("Отметить выполнение может только чартер поездки")
        if trip.status != TripStatus.PENDING:
            raise InvalidStateError("Поездка не ожидает выполнения", trip.status.value)

        updated = await self._repo.mark_charter_completed(trip_id, charter_id)
        if updated is None:
            current = await self._repo.get_by_id(trip_id)
            raise InvalidStateError(
                "Поездка не ожидает выполнения",
                current.status.value if current else trip.status.value,
            )

        await log_info(f"Поездка {trip_id}: чартер {charter_id} отметил выполнение", type_msg=TypeMsg.INFO)
        await publish_event(
            self._event_bus,
            EventTypes.TRIP_CHARTER_COMPLETED,
            {"trip_id": trip_id, "charter_id": charter_id},
        )
        await self._notify_parties(updated)
        return updated

    async def client_confirm(self, trip_id: int, user_id: int) -> Trip:
        """
        Заказчик подтверждает выполнение: charter_completed → completed,
        чартеру начисляется estimated_credits.

        Raises:
            ForbiddenError: Вызывающий не заказчик
            InvalidStateError: Чартер ещё не отметил выполнение
        """
        trip = await self.get_trip(trip_id, user_id)
        if trip.user_id != user_id:
            raise ForbiddenError("Подтвердить выполнение может только заказчик")
        if trip.status != TripStatus.CHARTER_COMPLETED:
            raise InvalidStateError("Чартер ещё не отметил выполнение", trip.status.value)

        completed = await self._ledger.release_to_charter(trip)

        await publish_event(
            self._event_bus,
            EventTypes.TRIP_COMPLETED,
            {"trip_id": trip_id, "charter_id": completed.charter_id, "credits": completed.estimated_credits},
        )
        await self._notify_parties(completed)
        return completed

    async def cancel_trip(self, trip_id: int, user_id: int) -> Trip:
        """
        Отмена поездки заказчиком до выполнения с возвратом кредитов.

        Raises:
            ForbiddenError: Вызывающий не заказчик
            InvalidStateError: Поездка не в pending
        """
        trip = await self.get_trip(trip_id, user_id)
        if trip.user_id != user_id:
            raise ForbiddenError("Отменить поездку может только заказчик")
        if trip.status != TripStatus.PENDING:
            raise InvalidStateError("Отменить можно только поездку в статусе pending", trip.status.value)

        cancelled = await self._ledger.refund_trip(trip)

        await publish_event(
            self._event_bus,
            EventTypes.TRIP_CANCELLED,
            {"trip_id": trip_id, "user_id": user_id, "refunded": cancelled.estimated_credits},
        )
        await self._notify_parties(cancelled)
        return cancelled

    async def can_leave_feedback(self, user_id: int, trip_id: int) -> FeedbackEligibility:
        """Может ли пользователь оставить отзыв другой стороне поездки."""
        trip = await self._repo.get_by_id(trip_id)
        if trip is None:
            return FeedbackEligibility(can_give=False, reason="Поездка не найдена")
        if not trip.is_party(user_id):
            return FeedbackEligibility(can_give=False, reason="Вы не участник поездки")
        if trip.status != TripStatus.COMPLETED:
            return FeedbackEligibility(can_give=False, reason="Поездка ещё не завершена", trip_id=trip_id)
        if await self._repo.has_feedback(trip_id, user_id):
            return FeedbackEligibility(can_give=False, reason="Отзыв уже оставлен", trip_id=trip_id)

        return FeedbackEligibility(can_give=True, trip_id=trip_id, to_user_id=trip.counterpart_of(user_id))

    async def _notify_parties(self, trip: Trip) -> None:
        if self._notifier is None:
            return
        payload = trip.model_dump(mode="json")
        await self._notifier.notify_trip_update(trip.user_id, payload)
        await self._notifier.notify_trip_update(trip.charter_id, payload)
