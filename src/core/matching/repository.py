# src/core/matching/repository.py
"""
Репозиторий подборов.
Все изменения статуса — условные UPDATE ... WHERE status = ANY(...),
проигравший гонку вызов получает None.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from src.common.constants import LifecycleState, MatchStatus
from src.core.matching.models import TravelMatch
from src.infra.database import DatabaseManager, QueryExecutor

MATCH_COLUMNS = """
    id, user_id, charter_id,
    pickup_address, pickup_latitude, pickup_longitude,
    destination_address, destination_latitude, destination_longitude,
    scheduled_date, max_radius_km, workers_count, distance_km, estimated_credits,
    status, expires_at, trip_id, conversation_id, lifecycle_state, created_at, updated_at
"""


class MatchRepository:
    """Репозиторий подборов."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def create(
        self,
        user_id: int,
        pickup_address: str,
        pickup_latitude: float,
        pickup_longitude: float,
        destination_address: str,
        destination_latitude: float,
        destination_longitude: float,
        scheduled_date: Optional[datetime],
        max_radius_km: float,
        workers_count: int,
        expires_at: datetime,
    ) -> TravelMatch:
        """Создаёт подбор в статусе searching."""
        row = await self._db.fetchrow(
            f"""
            INSERT INTO travel_matches (
                user_id, pickup_address, pickup_latitude, pickup_longitude,
                destination_address, destination_latitude, destination_longitude,
                scheduled_date, max_radius_km, workers_count, status, expires_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING {MATCH_COLUMNS}
            """,
            user_id,
            pickup_address,
            pickup_latitude,
            pickup_longitude,
            destination_address,
            destination_latitude,
            destination_longitude,
            scheduled_date,
            max_radius_km,
            workers_count,
            MatchStatus.SEARCHING.value,
            expires_at,
        )
        return self._row_to_match(row)

    async def get_by_id(
        self,
        match_id: int,
        conn: Optional[QueryExecutor] = None,
        for_update: bool = False,
    ) -> Optional[TravelMatch]:
        """
        Получает неудалённый подбор по ID.

        Args:
            match_id: ID подбора
            conn: Соединение транзакции (по умолчанию пул)
            for_update: Заблокировать строку до конца транзакции
        """
        executor = conn or self._db
        lock = " FOR UPDATE" if for_update else ""
        row = await executor.fetchrow(
            f"SELECT {MATCH_COLUMNS} FROM travel_matches WHERE id = $1 AND lifecycle_state = $2{lock}",
            match_id,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_match(row) if row else None

    async def list_by_user(self, user_id: int, status: Optional[MatchStatus] = None) -> list[TravelMatch]:
        """Подборы заказчика, новые сначала."""
        return await self._list_by("user_id", user_id, status)

    async def list_by_charter(self, charter_id: int, status: Optional[MatchStatus] = None) -> list[TravelMatch]:
        """Подборы, назначенные чартеру, новые сначала."""
        return await self._list_by("charter_id", charter_id, status)

    async def _list_by(self, column: str, value: int, status: Optional[MatchStatus]) -> list[TravelMatch]:
        rows = await self._db.fetch(
            f"""
            SELECT {MATCH_COLUMNS} FROM travel_matches
            WHERE {column} = $1
              AND lifecycle_state = $2
              AND ($3::varchar IS NULL OR status = $3)
            ORDER BY created_at DESC
            """,
            value,
            LifecycleState.ACTIVE.value,
            status.value if status else None,
        )
        return [self._row_to_match(row) for row in rows]

    async def assign_charter(
        self,
        match_id: int,
        charter_id: int,
        distance_km: float,
        estimated_credits: int,
    ) -> Optional[TravelMatch]:
        """
        Условный переход searching → pending с фиксацией чартера и цены.

        Returns:
            Обновлённый подбор или None, если статус уже не searching
        """
        row = await self._db.fetchrow(
            f"""
            UPDATE travel_matches
            SET charter_id = $2, distance_km = $3, estimated_credits = $4,
                status = $5, updated_at = NOW()
            WHERE id = $1 AND status = $6 AND lifecycle_state = $7
            RETURNING {MATCH_COLUMNS}
            """,
            match_id,
            charter_id,
            distance_km,
            estimated_credits,
            MatchStatus.PENDING.value,
            MatchStatus.SEARCHING.value,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_match(row) if row else None

    async def transition(
        self,
        match_id: int,
        expected: list[MatchStatus],
        new_status: MatchStatus,
        conn: Optional[QueryExecutor] = None,
    ) -> Optional[TravelMatch]:
        """
        Условный переход статуса.

        Args:
            match_id: ID подбора
            expected: Допустимые текущие статусы
            new_status: Новый статус
            conn: Соединение транзакции (по умолчанию пул)

        Returns:
            Обновлённый подбор или None, если текущий статус не из expected
        """
        executor = conn or self._db
        row = await executor.fetchrow(
            f"""
            UPDATE travel_matches
            SET status = $2, updated_at = NOW()
            WHERE id = $1 AND status = ANY($3::varchar[]) AND lifecycle_state = $4
            RETURNING {MATCH_COLUMNS}
            """,
            match_id,
            new_status.value,
            [s.value for s in expected],
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_match(row) if row else None

    async def complete_with_trip(self, conn: QueryExecutor, match_id: int, trip_id: int) -> Optional[TravelMatch]:
        """Условный переход accepted → completed с привязкой поездки (внутри транзакции)."""
        row = await conn.fetchrow(
            f"""
            UPDATE travel_matches
            SET status = $2, trip_id = $3, updated_at = NOW()
            WHERE id = $1 AND status = $4 AND trip_id IS NULL
            RETURNING {MATCH_COLUMNS}
            """,
            match_id,
            MatchStatus.COMPLETED.value,
            trip_id,
            MatchStatus.ACCEPTED.value,
        )
        return self._row_to_match(row) if row else None

    async def set_conversation(self, match_id: int, conversation_id: int) -> None:
        """Сохраняет ID чата подбора."""
        await self._db.execute(
            "UPDATE travel_matches SET conversation_id = $2, updated_at = NOW() WHERE id = $1",
            match_id,
            conversation_id,
        )

    async def expire_stale(self, now: datetime) -> list[TravelMatch]:
        """
        Переводит в expired все searching подборы с истёкшим сроком.

        Returns:
            Подборы, переведённые этим вызовом
        """
        rows = await self._db.fetch(
            f"""
            UPDATE travel_matches
            SET status = $1, updated_at = NOW()
            WHERE status = $2 AND expires_at <= $3 AND lifecycle_state = $4
            RETURNING {MATCH_COLUMNS}
            """,
            MatchStatus.EXPIRED.value,
            MatchStatus.SEARCHING.value,
            now,
            LifecycleState.ACTIVE.value,
        )
        return [self._row_to_match(row) for row in rows]

    @staticmethod
    def _row_to_match(row: Any) -> TravelMatch:
        """Преобразует строку БД в модель."""
        return TravelMatch(
            id=row["id"],
            user_id=row["user_id"],
            charter_id=row["charter_id"],
            pickup_address=row["pickup_address"],
            pickup_latitude=row["pickup_latitude"],
            pickup_longitude=row["pickup_longitude"],
            destination_address=row["destination_address"],
            destination_latitude=row["destination_latitude"],
            destination_longitude=row["destination_longitude"],
            scheduled_date=row["scheduled_date"],
            max_radius_km=row["max_radius_km"],
            workers_count=row["workers_count"],
            distance_km=row["distance_km"],
            estimated_credits=row["estimated_credits"],
            status=MatchStatus(row["status"]),
            expires_at=row["expires_at"],
            trip_id=row["trip_id"],
            conversation_id=row["conversation_id"],
            lifecycle_state=LifecycleState(row["lifecycle_state"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
