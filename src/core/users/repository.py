# src/core/users/repository.py
"""
Репозитории пользователей и доступности чартеров.
Адаптеры к внешнему справочнику пользователей.
"""

from __future__ import annotations

from typing import Any, Optional

from src.common.constants import LifecycleState, UserRole
from src.core.users.models import CharterAvailability, UserAccount
from src.infra.database import DatabaseManager, QueryExecutor, affected_rows

USER_COLUMNS = """
    id, email, name, number, avatar, role, credits, is_verified,
    origin_address, origin_latitude, origin_longitude,
    lifecycle_state, created_at, updated_at
"""


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_id(self, user_id: int) -> Optional[UserAccount]:
        """
        Получает активного пользователя по ID.
        Удалённые пользователи не возвращаются.
        """
        row = await self._db.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1 AND lifecycle_state = $2",
            user_id,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_user(row) if row else None

    async def get_for_update(self, conn: QueryExecutor, user_id: int) -> Optional[UserAccount]:
        """
        Получает пользователя с блокировкой строки (внутри транзакции).

        Args:
            conn: Соединение открытой транзакции
            user_id: ID пользователя
        """
        row = await conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1 AND lifecycle_state = $2 FOR UPDATE",
            user_id,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_user(row) if row else None

    async def debit_credits(self, conn: QueryExecutor, user_id: int, amount: int) -> bool:
        """
        Списывает кредиты, если баланса хватает.

        Returns:
            False, если баланса недостаточно (строка не изменена)
        """
        status = await conn.execute(
            """
            UPDATE users
            SET credits = credits - $2, updated_at = NOW()
            WHERE id = $1 AND credits >= $2
            """,
            user_id,
            amount,
        )
        return affected_rows(status) == 1

    async def credit_credits(self, conn: QueryExecutor, user_id: int, amount: int) -> bool:
        """Начисляет кредиты."""
        status = await conn.execute(
            "UPDATE users SET credits = credits + $2, updated_at = NOW() WHERE id = $1",
            user_id,
            amount,
        )
        return affected_rows(status) == 1

    async def update_origin(
        self,
        charter_id: int,
        address: str,
        latitude: float,
        longitude: float,
    ) -> Optional[UserAccount]:
        """Обновляет базу чартера и возвращает обновлённого пользователя."""
        row = await self._db.fetchrow(
            f"""
            UPDATE users
            SET origin_address = $2, origin_latitude = $3, origin_longitude = $4, updated_at = NOW()
            WHERE id = $1 AND lifecycle_state = $5
            RETURNING {USER_COLUMNS}
            """,
            charter_id,
            address,
            latitude,
            longitude,
            LifecycleState.ACTIVE.value,
        )
        return self._row_to_user(row) if row else None

    async def find_available_charters(self) -> list[UserAccount]:
        """
        Справочник чартеров: верифицированные, активные, с заданной базой
        и включённой доступностью.
        """
        rows = await self._db.fetch(
            """
            SELECT u.id, u.email, u.name, u.number, u.avatar, u.role, u.credits, u.is_verified,
                   u.origin_address, u.origin_latitude, u.origin_longitude,
                   u.lifecycle_state, u.created_at, u.updated_at
            FROM users u
            JOIN charter_availability a ON a.charter_id = u.id
            WHERE u.role = $1
              AND u.is_verified = TRUE
              AND u.lifecycle_state = $2
              AND u.origin_latitude IS NOT NULL
              AND u.origin_longitude IS NOT NULL
              AND a.is_available = TRUE
            ORDER BY u.id
            """,
            UserRole.CHARTER.value,
            LifecycleState.ACTIVE.value,
        )
        return [self._row_to_user(row) for row in rows]

    @staticmethod
    def _row_to_user(row: Any) -> UserAccount:
        """Преобразует строку БД в модель."""
        return UserAccount(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            number=row["number"],
            avatar=row["avatar"],
            role=UserRole(row["role"]),
            credits=row["credits"],
            is_verified=row["is_verified"],
            origin_address=row["origin_address"],
            origin_latitude=row["origin_latitude"],
            origin_longitude=row["origin_longitude"],
            lifecycle_state=LifecycleState(row["lifecycle_state"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class AvailabilityRepository:
    """Репозиторий доступности чартеров."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get(self, charter_id: int) -> Optional[CharterAvailability]:
        """Возвращает строку доступности или None, если чартер ни разу не переключался."""
        row = await self._db.fetchrow(
            "SELECT charter_id, is_available, last_toggled_at FROM charter_availability WHERE charter_id = $1",
            charter_id,
        )
        return CharterAvailability.model_validate(dict(row)) if row else None

    async def upsert(self, charter_id: int, is_available: bool, toggled_at: Any) -> CharterAvailability:
        """Создаёт или обновляет строку доступности."""
        row = await self._db.fetchrow(
            """
            INSERT INTO charter_availability (charter_id, is_available, last_toggled_at)
            VALUES ($1, $2, $3)
            ON CONFLICT (charter_id) DO UPDATE
            SET is_available = EXCLUDED.is_available,
                last_toggled_at = EXCLUDED.last_toggled_at
            RETURNING charter_id, is_available, last_toggled_at
            """,
            charter_id,
            is_available,
            toggled_at,
        )
        return CharterAvailability.model_validate(dict(row))
