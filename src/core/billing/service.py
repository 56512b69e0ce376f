# src/core/billing/service.py
"""
Кредитный леджер.

Кредиты заказчика списываются при создании поездки и переводятся
чартеру только после подтверждения заказчиком. Каждая операция —
одна транзакция: либо все записи применены, либо ни одной.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.common.constants import MatchStatus, TripStatus, TypeMsg
from src.common.exceptions import InsufficientFundsError, InvalidStateError, NotFoundError
from src.common.logger import log_info
from src.core.trips.models import Trip
from src.core.trips.repository import TripRepository
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager

if TYPE_CHECKING:
    from src.core.matching.models import TravelMatch


class CreditLedger:
    """
    Атомарные операции с балансами, привязанные к жизненному циклу поездки.

    Реализует:
    - Списание с заказчика и создание поездки
    - Перевод кредитов чартеру после подтверждения
    - Возврат кредитов при отмене поездки
    """

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных
        """
        from src.core.matching.repository import MatchRepository

        self._db = db
        self._users = UserRepository(db)
        self._matches = MatchRepository(db)
        self._trips = TripRepository(db)

    async def create_trip_from_match(self, match: TravelMatch) -> Trip:
        """
        Списывает стоимость подбора с заказчика, создаёт поездку
        и переводит подбор в completed.

        Args:
            match: Принятый подбор с назначенным чартером

        Returns:
            Созданная поездка

        Raises:
            InsufficientFundsError: Баланса не хватает (ничего не изменено)
            InvalidStateError: Подбор изменился до фиксации
        """
        amount = match.estimated_credits or 0

        async with self._db.transaction() as conn:
            requester = await self._users.get_for_update(conn, match.user_id)
            if requester is None:
                raise NotFoundError("Пользователь не найден")
            if requester.credits < amount:
                raise InsufficientFundsError(required=amount, available=requester.credits)

            if not await self._users.debit_credits(conn, match.user_id, amount):
                raise InsufficientFundsError(required=amount, available=requester.credits)

            trip = await self._trips.create_from_match(conn, match)

            updated = await self._matches.complete_with_trip(conn, match.id, trip.id)
            if updated is None:
                current = await self._matches.get_by_id(match.id, conn=conn)
                status = current.status.value if current else MatchStatus.CANCELLED.value
                raise InvalidStateError("Подбор больше не ожидает создания поездки", status)

        await log_info(
            f"Поездка {trip.id} создана из подбора {match.id}: списано {amount} кредитов с {match.user_id}",
            type_msg=TypeMsg.INFO,
        )
        return trip

    async def release_to_charter(self, trip: Trip) -> Trip:
        """
        Завершает поездку и начисляет чартеру зарезервированные кредиты.
        Заказчик повторно не списывается.

        Raises:
            InvalidStateError: Поездка уже не в статусе charter_completed
        """
        async with self._db.transaction() as conn:
            completed = await self._trips.transition(
                conn, trip.id, TripStatus.CHARTER_COMPLETED, TripStatus.COMPLETED
            )
            if completed is None:
                current = await self._trips.get_by_id(trip.id)
                status = current.status.value if current else trip.status.value
                raise InvalidStateError("Поездка не ожидает подтверждения", status)

            await self._users.credit_credits(conn, completed.charter_id, completed.estimated_credits)

        await log_info(
            f"Поездка {trip.id} завершена: {completed.estimated_credits} кредитов переведено чартеру {completed.charter_id}",
            type_msg=TypeMsg.INFO,
        )
        return completed

    async def refund_trip(self, trip: Trip) -> Trip:
        """
        Отменяет поездку в статусе pending и возвращает кредиты заказчику.

        Raises:
            InvalidStateError: Поездка уже не в статусе pending
        """
        async with self._db.transaction() as conn:
            cancelled = await self._trips.transition(
                conn, trip.id, TripStatus.PENDING, TripStatus.CANCELLED
            )
            if cancelled is None:
                current = await self._trips.get_by_id(trip.id)
                status = current.status.value if current else trip.status.value
                raise InvalidStateError("Отменить можно только поездку в статусе pending", status)

            await self._users.credit_credits(conn, cancelled.user_id, cancelled.estimated_credits)

        await log_info(
            f"Поездка {trip.id} отменена: {cancelled.estimated_credits} кредитов возвращено {cancelled.user_id}",
            type_msg=TypeMsg.INFO,
        )
        return cancelled
