# src/core/trips/repository.py
"""
Репозиторий поездок.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from src.common.constants import LifecycleState, TripStatus
from src.core.trips.models import Trip
from src.infra.database import DatabaseManager, QueryExecutor

if TYPE_CHECKING:
    from src.core.matching.models import TravelMatch

TRIP_COLUMNS = """
    id, match_id, user_id, charter_id, address, latitude, longitude,
    workers_count, scheduled_date, estimated_credits, status,
    charter_completed_at, completed_at, lifecycle_state, created_at, updated_at
"""


class TripRepository:
    """Репозиторий поездок."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create_from_match(self, conn: QueryExecutor, match: TravelMatch) -> Trip:
        """
        Создаёт поездку по принятому подбору (внутри транзакции).
        Стоимость копируется из подбора без пересчёта.
        """
        row = await conn.fetchrow(
            f"""
            INSERT INTO trips (
                match_id, user_id, charter_id, address, latitude, longitude,
                workers_count, scheduled_date, estimated_credits, status
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING {TRIP_COLUMNS}
            """,
            match.id,
            match.user_id,
            match.charter_id,
            match.destination_address,
            match.destination_latitude,
            match.destination_longitude,
            match.workers_count,
            match.scheduled_date,
            match.estimated_credits or 0,
            TripStatus.PENDING.value,
        )
        return self._row_to_trip(row)

    async def get_by_id(self, trip_id: int) -> Optional[Trip]:
        """Получает неудалённую поездку по ID."""
        row = await self._db.fetchrow(
            f"SELECT {TRIP_COLUMNS} FROM trips WHERE id = $1 AND lifecycle_state = $2",
            trip_id,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_trip(row) if row else None

    async def mark_charter_completed(self, trip_id: int, charter_id: int) -> Optional[Trip]:
        """Условный переход pending → charter_completed."""
        row = await self._db.fetchrow(
            f"""
            UPDATE trips
            SET status = $3, charter_completed_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND charter_id = $2 AND status = $4
            RETURNING {TRIP_COLUMNS}
            """,
            trip_id,
            charter_id,
            TripStatus.CHARTER_COMPLETED.value,
            TripStatus.PENDING.value,
        )
        return self._row_to_trip(row) if row else None

    async def transition(
        self,
        conn: QueryExecutor,
        trip_id: int,
        expected: TripStatus,
        new_status: TripStatus,
    ) -> Optional[Trip]:
        """
        Условный переход статуса внутри транзакции.
        Переход в completed проставляет completed_at.
        """
        row = await conn.fetchrow(
            f"""
            UPDATE trips
            SET status = $2,
                completed_at = CASE WHEN $2 = '{TripStatus.COMPLETED.value}' THEN NOW() ELSE completed_at END,
                updated_at = NOW()
            WHERE id = $1 AND status = $3
            RETURNING {TRIP_COLUMNS}
            """,
            trip_id,
            new_status.value,
            expected.value,
        )
        return self._row_to_trip(row) if row else None

    async def list_by_user(self, user_id: int) -> list[Trip]:
        """Поездки, где пользователь — заказчик или чартер."""
        rows = await self._db.fetch(
            f"""
            SELECT {TRIP_COLUMNS} FROM trips
            WHERE (user_id = $1 OR charter_id = $1) AND lifecycle_state = $2
            ORDER BY created_at DESC
            """,
            user_id,
            LifecycleState.ACTIVE.value,
        )
        return [self._row_to_trip(row) for row in rows]

    async def has_feedback(self, trip_id: int, from_user_id: int) -> bool:
        """Пользователь уже оставил отзыв по поездке."""
        value = await self._db.fetchval(
            "SELECT EXISTS(SELECT 1 FROM feedback WHERE trip_id = $1 AND from_user_id = $2)",
            trip_id,
            from_user_id,
        )
        return bool(value)

    @staticmethod
    def _row_to_trip(row: Any) -> Trip:
        """Преобразует строку БД в модель."""
        return Trip(
            id=row["id"],
            match_id=row["match_id"],
            user_id=row["user_id"],
            charter_id=row["charter_id"],
            address=row["address"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            workers_count=row["workers_count"],
            scheduled_date=row["scheduled_date"],
            estimated_credits=row["estimated_credits"],
            status=TripStatus(row["status"]),
            charter_completed_at=row["charter_completed_at"],
            completed_at=row["completed_at"],
            lifecycle_state=LifecycleState(row["lifecycle_state"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
