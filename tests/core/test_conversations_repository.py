# tests/core/test_conversations_repository.py
"""
Тесты для репозитория чатов.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.common.constants import ConversationStatus
from src.core.conversations.repository import ConversationRepository


def _row(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    row = {
        "id": 50,
        "match_id": 10,
        "user_id": 1,
        "charter_id": 2,
        "status": "active",
        "expires_at": now + timedelta(hours=5),
        "is_archived": False,
        "closed_by": None,
        "closed_at": None,
        "created_at": now,
        "updated_at": None,
    }
    row.update(overrides)
    return row


class TestConversationRepository:
    """Тесты ConversationRepository."""

    @pytest.mark.asyncio
    async def test_create_conflict_returns_none(self, mock_db) -> None:
        """Для одного подбора существует не более одного чата."""
        repo = ConversationRepository(mock_db)

        result = await repo.create(10, 1, 2, datetime.now(timezone.utc))

        assert result is None
        assert "ON CONFLICT (match_id) DO NOTHING" in mock_db.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [("UPDATE 1", True), ("UPDATE 0", False)])
    async def test_mark_expired(self, mock_db, status, expected) -> None:
        mock_db.execute.return_value = status
        repo = ConversationRepository(mock_db)

        assert await repo.mark_expired(50) is expected

    @pytest.mark.asyncio
    async def test_close_maps_row(self, mock_db) -> None:
        mock_db.fetchrow.return_value = _row(status="closed", closed_by=2)
        repo = ConversationRepository(mock_db)

        closed = await repo.close(50, 2)

        assert closed.status == ConversationStatus.CLOSED
        assert closed.closed_by == 2

    @pytest.mark.asyncio
    async def test_mark_read_counts_rows(self, mock_db) -> None:
        mock_db.execute.return_value = "UPDATE 3"
        repo = ConversationRepository(mock_db)

        assert await repo.mark_read(50, 2) == 3
        assert "sender_id <> $2" in mock_db.execute.call_args.args[0]

    @pytest.mark.asyncio
    async def test_sweep_phases_skip_archived(self, mock_db) -> None:
        mock_db.fetch.side_effect = [[_row(status="expired")], [{"id": 50}]]
        repo = ConversationRepository(mock_db)
        now = datetime.now(timezone.utc)

        expired = await repo.expire_due(now)
        deleted = await repo.delete_expired(now)

        assert expired[0].status == ConversationStatus.EXPIRED
        assert deleted == [50]
        for call in mock_db.fetch.call_args_list:
            assert "is_archived = FALSE" in call.args[0]

    @pytest.mark.asyncio
    async def test_list_messages(self, mock_db) -> None:
        mock_db.fetch.return_value = [
            {"id": 1, "conversation_id": 50, "sender_id": 1, "content": "a", "is_read": True, "created_at": None},
            {"id": 2, "conversation_id": 50, "sender_id": 2, "content": "b", "is_read": False, "created_at": None},
        ]
        repo = ConversationRepository(mock_db)

        messages = await repo.list_messages(50)

        assert [m.id for m in messages] == [1, 2]
        assert "ORDER BY created_at ASC" in mock_db.fetch.call_args.args[0]
