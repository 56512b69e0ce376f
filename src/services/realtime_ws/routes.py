# src/services/realtime_ws/routes.py
"""
WebSocket endpoint: /ws?token=<jwt>

Входящие сообщения:
- {"action": "join-conversation", "conversation_id": 1}
- {"action": "leave-conversation", "conversation_id": 1}
- {"action": "typing", "conversation_id": 1, "is_typing": true}
- {"action": "ping"}

Ответы и события: {"event": "<имя>", "data": {...}}.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from src.common.constants import RealtimeEvent, TypeMsg
from src.common.logger import log_error, log_info
from src.core.conversations.service import ConversationService
from src.services.api.auth import user_from_token
from src.services.api.dependencies import get_conversation_service, get_notifier, get_registry
from src.services.realtime_ws.connection_manager import ConnectionRegistry, conversation_room
from src.services.realtime_ws.notifier import RealtimeNotifier

router = APIRouter(tags=["Realtime"])


@router.get("/ws/stats")
async def get_stats(registry: ConnectionRegistry = Depends(get_registry)) -> dict[str, Any]:
    """Статистика соединений."""
    return registry.stats()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    registry: ConnectionRegistry = Depends(get_registry),
    notifier: RealtimeNotifier = Depends(get_notifier),
    conversations: ConversationService = Depends(get_conversation_service),
) -> None:
    user = user_from_token(token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await registry.register(websocket, user.user_id)
    await log_info(f"WS: пользователь {user.user_id} подключён", type_msg=TypeMsg.DEBUG)

    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                await notifier.send_to(websocket, RealtimeEvent.ERROR, {"message": "Некорректный JSON"})
                continue
            await handle_client_message(websocket, user.user_id, data, registry, notifier, conversations)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        await log_error(f"WS: ошибка соединения пользователя {user.user_id}: {e}")
    finally:
        info = await registry.unregister(websocket)
        if info is not None:
            for room in info.rooms:
                conversation_id = int(room.split(":", 1)[1])
                await notifier.notify_user_left(conversation_id, user.user_id)
        await log_info(f"WS: пользователь {user.user_id} отключён", type_msg=TypeMsg.DEBUG)


async def handle_client_message(
    websocket: Any,
    user_id: int,
    data: Any,
    registry: ConnectionRegistry,
    notifier: RealtimeNotifier,
    conversations: ConversationService,
) -> None:
    """
    Обрабатывает одно сообщение клиента.
    Ошибки возвращаются этому же соединению событием error.
    """
    if not isinstance(data, dict):
        await notifier.send_to(websocket, RealtimeEvent.ERROR, {"message": "Ожидается JSON-объект"})
        return

    action = data.get("action")

    if action == "ping":
        await notifier.send_to(websocket, RealtimeEvent.PONG, {})
        return

    if action not in ("join-conversation", "leave-conversation", "typing"):
        await notifier.send_to(websocket, RealtimeEvent.ERROR, {"message": f"Неизвестное действие: {action}"})
        return

    conversation_id = _conversation_id(data)
    if conversation_id is None:
        await notifier.send_to(websocket, RealtimeEvent.ERROR, {"message": "Не указан conversation_id"})
        return

    room = conversation_room(conversation_id)

    if action == "join-conversation":
        if not await conversations.is_participant(conversation_id, user_id):
            await notifier.send_to(
                websocket,
                RealtimeEvent.ERROR,
                {"message": "Нет доступа к чату", "conversation_id": conversation_id},
            )
            return
        await registry.join_room(websocket, room, user_id)
        await notifier.notify_user_joined(conversation_id, user_id)

    elif action == "leave-conversation":
        await registry.leave_room(websocket, room)
        await notifier.notify_user_left(conversation_id, user_id)

    elif action == "typing":
        if room not in registry.rooms_of(websocket):
            await notifier.send_to(
                websocket,
                RealtimeEvent.ERROR,
                {"message": "Сначала войдите в чат", "conversation_id": conversation_id},
            )
            return
        await notifier.notify_typing(conversation_id, user_id, bool(data.get("is_typing", True)))


def _conversation_id(data: dict[str, Any]) -> Optional[int]:
    value = data.get("conversation_id")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
