# tests/core/test_conversations_service.py
"""
Тесты для сервиса чатов.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.common.constants import ConversationStatus, MatchStatus
from src.common.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)
from src.core.conversations.service import ConversationService


@pytest.fixture
def service(mock_db, mock_event_bus, mock_notifier) -> ConversationService:
    svc = ConversationService(mock_db, notifier=mock_notifier, event_bus=mock_event_bus)
    svc._repo = AsyncMock()
    svc._matches = AsyncMock()
    svc._max_length = 2000
    return svc


class TestCreateConversation:
    """Тесты создания чата."""

    @pytest.mark.asyncio
    async def test_creates_for_accepted_match(self, service, make_match, make_conversation, mock_notifier) -> None:
        service._matches.get_by_id.return_value = make_match(status=MatchStatus.ACCEPTED, charter_id=2)
        service._repo.get_by_match.return_value = None
        service._repo.create.return_value = make_conversation()

        conversation = await service.create_conversation(10)

        assert conversation.id == 50
        kwargs = service._repo.create.call_args.kwargs
        assert kwargs["user_id"] == 1
        assert kwargs["charter_id"] == 2
        assert kwargs["expires_at"] > datetime.now(timezone.utc) + timedelta(hours=4)
        assert mock_notifier.notify_new_conversation.await_count == 2

    @pytest.mark.asyncio
    async def test_idempotent(self, service, make_match, make_conversation) -> None:
        """Повторный вызов возвращает существующий чат."""
        existing = make_conversation()
        service._matches.get_by_id.return_value = make_match(status=MatchStatus.ACCEPTED, charter_id=2)
        service._repo.get_by_match.return_value = existing

        assert await service.create_conversation(10) == existing
        service._repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_insert_race(self, service, make_match, make_conversation) -> None:
        existing = make_conversation()
        service._matches.get_by_id.return_value = make_match(status=MatchStatus.ACCEPTED, charter_id=2)
        service._repo.get_by_match.side_effect = [None, existing]
        service._repo.create.return_value = None

        assert await service.create_conversation(10) == existing

    @pytest.mark.asyncio
    async def test_match_not_accepted(self, service, make_match) -> None:
        service._matches.get_by_id.return_value = make_match()

        with pytest.raises(InvalidStateError) as exc_info:
            await service.create_conversation(10)

        assert exc_info.value.current_state == "searching"

    @pytest.mark.asyncio
    async def test_match_missing(self, service) -> None:
        service._matches.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_conversation(10)


class TestSendMessage:
    """Тесты отправки сообщений."""

    @pytest.mark.asyncio
    async def test_send_broadcasts(self, service, make_conversation, make_message, mock_notifier) -> None:
        service._repo.get_by_id.return_value = make_conversation()
        service._repo.add_message.return_value = make_message()

        message = await service.send_message(50, 1, "  Здравствуйте  ")

        assert message.id == 500
        service._repo.add_message.assert_awaited_once_with(50, 1, "Здравствуйте")
        mock_notifier.broadcast_message.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    async def test_length_limits(self, service, content) -> None:
        with pytest.raises(ValidationFailureError):
            await service.send_message(50, 1, content)

    @pytest.mark.asyncio
    async def test_max_length_accepted(self, service, make_conversation, make_message) -> None:
        service._repo.get_by_id.return_value = make_conversation()
        service._repo.add_message.return_value = make_message()

        await service.send_message(50, 1, "x" * 2000)

        service._repo.add_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stranger(self, service, make_conversation) -> None:
        service._repo.get_by_id.return_value = make_conversation()

        with pytest.raises(ForbiddenError):
            await service.send_message(50, 3, "Привет")

    @pytest.mark.asyncio
    async def test_closed_conversation(self, service, make_conversation) -> None:
        service._repo.get_by_id.return_value = make_conversation(status=ConversationStatus.CLOSED)

        with pytest.raises(InvalidStateError) as exc_info:
            await service.send_message(50, 1, "Привет")

        assert exc_info.value.current_state == "closed"

    @pytest.mark.asyncio
    async def test_lazy_expiry(self, service, make_conversation, mock_notifier) -> None:
        """Сообщение в просроченный чат переводит его в expired."""
        service._repo.get_by_id.return_value = make_conversation(
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
        service._repo.mark_expired.return_value = True

        with pytest.raises(InvalidStateError) as exc_info:
            await service.send_message(50, 1, "Привет")

        assert exc_info.value.current_state == "expired"
        service._repo.mark_expired.assert_awaited_once_with(50)
        mock_notifier.notify_conversation_expired.assert_awaited_once_with(50)
        service._repo.add_message.assert_not_awaited()


class TestReadAndClose:
    """Тесты чтения истории и закрытия."""

    @pytest.mark.asyncio
    async def test_messages_marked_read(self, service, make_conversation, make_message) -> None:
        service._repo.get_by_id.return_value = make_conversation()
        service._repo.list_messages.return_value = [make_message()]
        service._repo.mark_read.return_value = 1

        messages = await service.get_messages(50, 2)

        assert len(messages) == 1
        service._repo.mark_read.assert_awaited_once_with(50, 2)

    @pytest.mark.asyncio
    async def test_mark_read_failure_ignored(self, service, make_conversation, make_message) -> None:
        service._repo.get_by_id.return_value = make_conversation()
        service._repo.list_messages.return_value = [make_message()]
        service._repo.mark_read.side_effect = RuntimeError("db")

        messages = await service.get_messages(50, 2)

        assert len(messages) == 1

    @pytest.mark.asyncio
    async def test_close_active(self, service, make_conversation, mock_notifier) -> None:
        service._repo.get_by_id.return_value = make_conversation()
        service._repo.close.return_value = make_conversation(status=ConversationStatus.CLOSED, closed_by=2)

        closed = await service.close_conversation(50, 2)

        assert closed.status == ConversationStatus.CLOSED
        mock_notifier.notify_conversation_closed.assert_awaited_once_with(50, 2)

    @pytest.mark.asyncio
    async def test_close_expired(self, service, make_conversation) -> None:
        """Закрыть можно только активный чат."""
        service._repo.get_by_id.return_value = make_conversation(status=ConversationStatus.EXPIRED)

        with pytest.raises(InvalidStateError):
            await service.close_conversation(50, 1)

        service._repo.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_archive_missing(self, service) -> None:
        service._repo.archive.return_value = None

        with pytest.raises(NotFoundError):
            await service.archive_conversation(50)


class TestSweep:
    """Тесты двухфазной очистки."""

    @pytest.mark.asyncio
    async def test_sweep_counts(self, service, make_conversation, mock_notifier) -> None:
        service._repo.expire_due.return_value = [make_conversation(status=ConversationStatus.EXPIRED)]
        service._repo.delete_expired.return_value = [49, 50]

        assert await service.sweep_expired() == (1, 2)
        mock_notifier.notify_conversation_expired.assert_awaited_once_with(50)

    @pytest.mark.asyncio
    async def test_empty_sweep(self, service) -> None:
        service._repo.expire_due.return_value = []
        service._repo.delete_expired.return_value = []

        assert await service.sweep_expired() == (0, 0)
