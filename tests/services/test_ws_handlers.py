# tests/services/test_ws_handlers.py
"""
Тесты обработки сообщений клиента WebSocket.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.services.realtime_ws.connection_manager import ConnectionRegistry, conversation_room
from src.services.realtime_ws.notifier import RealtimeNotifier
from src.services.realtime_ws.routes import handle_client_message


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def notifier(registry) -> RealtimeNotifier:
    return RealtimeNotifier(registry)


@pytest.fixture
def conversations() -> AsyncMock:
    service = AsyncMock()
    service.is_participant.return_value = True
    return service


@pytest.fixture
def handle(registry, notifier, conversations):
    async def call(ws, user_id, data):
        await handle_client_message(ws, user_id, data, registry, notifier, conversations)
    return call


def _last_event(ws: AsyncMock) -> dict:
    return ws.send_json.call_args.args[0]


class TestHandleClientMessage:
    """Тесты handle_client_message."""

    @pytest.mark.asyncio
    async def test_ping(self, handle) -> None:
        ws = AsyncMock()

        await handle(ws, 1, {"action": "ping"})

        assert _last_event(ws) == {"event": "pong", "data": {}}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            ["join-conversation"],
            {"action": "dance"},
            {"action": "join-conversation"},
            {"action": "typing", "conversation_id": "abc"},
        ],
    )
    async def test_bad_messages(self, handle, data) -> None:
        ws = AsyncMock()

        await handle(ws, 1, data)

        assert _last_event(ws)["event"] == "error"

    @pytest.mark.asyncio
    async def test_join_as_participant(self, handle, registry, conversations) -> None:
        ws, other = AsyncMock(), AsyncMock()
        await registry.join_room(other, conversation_room(50), 2)

        await handle(ws, 1, {"action": "join-conversation", "conversation_id": 50})

        conversations.is_participant.assert_awaited_once_with(50, 1)
        assert ws in registry.connections_in(conversation_room(50))
        assert _last_event(other) == {"event": "user-joined", "data": {"conversation_id": 50, "user_id": 1}}

    @pytest.mark.asyncio
    async def test_join_denied(self, handle, registry, conversations) -> None:
        conversations.is_participant.return_value = False
        ws = AsyncMock()

        await handle(ws, 3, {"action": "join-conversation", "conversation_id": 50})

        assert registry.connections_in(conversation_room(50)) == []
        assert _last_event(ws)["data"]["message"] == "Нет доступа к чату"

    @pytest.mark.asyncio
    async def test_typing_requires_join(self, handle) -> None:
        ws = AsyncMock()

        await handle(ws, 1, {"action": "typing", "conversation_id": 50})

        assert _last_event(ws)["event"] == "error"

    @pytest.mark.asyncio
    async def test_typing_reaches_others(self, handle, registry) -> None:
        ws, other = AsyncMock(), AsyncMock()
        await registry.join_room(ws, conversation_room(50), 1)
        await registry.join_room(other, conversation_room(50), 2)

        await handle(ws, 1, {"action": "typing", "conversation_id": "50", "is_typing": False})

        ws.send_json.assert_not_awaited()
        assert _last_event(other)["data"]["is_typing"] is False

    @pytest.mark.asyncio
    async def test_leave(self, handle, registry) -> None:
        ws = AsyncMock()
        await registry.join_room(ws, conversation_room(50), 1)

        await handle(ws, 1, {"action": "leave-conversation", "conversation_id": 50})

        assert registry.rooms_of(ws) == set()
