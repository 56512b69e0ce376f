# tests/core/test_users_repository.py
"""
Тесты для репозиториев пользователей и доступности.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.common.constants import UserRole
from src.core.users.repository import AvailabilityRepository, UserRepository


def _row(**overrides) -> dict:
    row = {
        "id": 2,
        "email": "charter@example.com",
        "name": "Чартер",
        "number": None,
        "avatar": None,
        "role": "charter",
        "credits": 0,
        "is_verified": True,
        "origin_address": "Quilmes",
        "origin_latitude": -34.76,
        "origin_longitude": -58.40,
        "lifecycle_state": "active",
        "created_at": datetime.now(timezone.utc),
        "updated_at": None,
    }
    row.update(overrides)
    return row


class TestUserRepository:
    """Тесты UserRepository."""

    @pytest.mark.asyncio
    async def test_get_by_id_maps_row(self, mock_db) -> None:
        mock_db.fetchrow.return_value = _row()
        repo = UserRepository(mock_db)

        user = await repo.get_by_id(2)

        assert user.role == UserRole.CHARTER
        assert user.origin.latitude == -34.76

    @pytest.mark.asyncio
    async def test_get_by_id_excludes_deleted(self, mock_db) -> None:
        repo = UserRepository(mock_db)

        assert await repo.get_by_id(2) is None
        query = mock_db.fetchrow.call_args.args[0]
        assert "lifecycle_state" in query

    @pytest.mark.asyncio
    async def test_get_for_update_locks_row(self, mock_db, mock_conn) -> None:
        mock_conn.fetchrow.return_value = _row(id=1, role="user")
        repo = UserRepository(mock_db)

        user = await repo.get_for_update(mock_conn, 1)

        assert user.id == 1
        assert "FOR UPDATE" in mock_conn.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [("UPDATE 1", True), ("UPDATE 0", False)])
    async def test_debit_is_conditional(self, mock_db, mock_conn, status, expected) -> None:
        """Списание не уводит баланс в минус."""
        mock_conn.execute.return_value = status
        repo = UserRepository(mock_db)

        assert await repo.debit_credits(mock_conn, 1, 824) is expected
        query = mock_conn.execute.call_args.args[0]
        assert "credits >= $2" in query

    @pytest.mark.asyncio
    async def test_find_available_charters(self, mock_db) -> None:
        mock_db.fetch.return_value = [_row(), _row(id=5, email="b@example.com")]
        repo = UserRepository(mock_db)

        charters = await repo.find_available_charters()

        assert [c.id for c in charters] == [2, 5]
        assert mock_db.fetch.call_args.args[1] == "charter"


class TestAvailabilityRepository:
    """Тесты AvailabilityRepository."""

    @pytest.mark.asyncio
    async def test_missing_row(self, mock_db) -> None:
        repo = AvailabilityRepository(mock_db)

        assert await repo.get(2) is None

    @pytest.mark.asyncio
    async def test_upsert(self, mock_db) -> None:
        now = datetime.now(timezone.utc)
        mock_db.fetchrow.return_value = {"charter_id": 2, "is_available": True, "last_toggled_at": now}
        repo = AvailabilityRepository(mock_db)

        availability = await repo.upsert(2, True, now)

        assert availability.is_available is True
        assert "ON CONFLICT" in mock_db.fetchrow.call_args.args[0]
