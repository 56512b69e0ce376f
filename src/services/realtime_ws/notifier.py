# src/services/realtime_ws/notifier.py
"""
Realtime-уведомления поверх реестра соединений.

Доставка без гарантий и без очереди: если у пользователя нет
соединений, событие логируется и отбрасывается. Источник истины —
БД, клиент пересинхронизируется после переподключения.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterable

from src.common.constants import RealtimeEvent, TypeMsg
from src.common.logger import log_info, log_warning
from src.services.realtime_ws.connection_manager import ConnectionRegistry, conversation_room


class RealtimeNotifier:
    """
    Push-уведомления клиентам.
    Ни один метод не выбрасывает исключений: ошибка отправки
    удаляет соединение из реестра.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._total_sent: int = 0

    @property
    def total_sent(self) -> int:
        return self._total_sent

    # =========================================================================
    # ЧАТЫ
    # =========================================================================

    async def broadcast_message(self, conversation_id: int, message: dict[str, Any]) -> int:
        """Новое сообщение всем соединениям комнаты, включая другие сессии отправителя."""
        return await self._send_room(conversation_id, RealtimeEvent.NEW_MESSAGE, message)

    async def notify_new_conversation(self, user_id: int, conversation: dict[str, Any]) -> int:
        return await self._send_user(user_id, RealtimeEvent.NEW_CONVERSATION, conversation)

    async def notify_conversation_closed(self, conversation_id: int, closed_by: int) -> int:
        return await self._send_room(
            conversation_id,
            RealtimeEvent.CONVERSATION_CLOSED,
            {"conversation_id": conversation_id, "closed_by": closed_by},
        )

    async def notify_conversation_expired(self, conversation_id: int) -> int:
        return await self._send_room(
            conversation_id,
            RealtimeEvent.CONVERSATION_EXPIRED,
            {"conversation_id": conversation_id},
        )

    async def notify_typing(self, conversation_id: int, user_id: int, is_typing: bool) -> int:
        """Индикатор набора всем в комнате, кроме соединений самого пользователя."""
        excluded = set(self._registry.connections_for(user_id))
        handles = [
            h for h in self._registry.connections_in(conversation_room(conversation_id))
            if h not in excluded
        ]
        payload = {"conversation_id": conversation_id, "user_id": user_id, "is_typing": is_typing}
        return await self._deliver(handles, RealtimeEvent.USER_TYPING, payload)

    async def notify_user_joined(self, conversation_id: int, user_id: int) -> int:
        return await self._send_room(
            conversation_id,
            RealtimeEvent.USER_JOINED,
            {"conversation_id": conversation_id, "user_id": user_id},
        )

    async def notify_user_left(self, conversation_id: int, user_id: int) -> int:
        return await self._send_room(
            conversation_id,
            RealtimeEvent.USER_LEFT,
            {"conversation_id": conversation_id, "user_id": user_id},
        )

    # =========================================================================
    # ПОДБОРЫ И ПОЕЗДКИ
    # =========================================================================

    async def notify_match_update(self, user_id: int, match: dict[str, Any]) -> int:
        """Смена статуса подбора — всем соединениям пользователя."""
        return await self._send_user(user_id, RealtimeEvent.MATCH_UPDATED, match)

    async def notify_trip_update(self, user_id: int, trip: dict[str, Any]) -> int:
        return await self._send_user(user_id, RealtimeEvent.TRIP_UPDATED, trip)

    # =========================================================================
    # ДОСТАВКА
    # =========================================================================

    async def send_to(self, handle: Hashable, event: RealtimeEvent, data: dict[str, Any]) -> bool:
        """Отправка одному соединению (ответы на действия клиента)."""
        return await self._deliver([handle], event, data) == 1

    async def _send_user(self, user_id: int, event: RealtimeEvent, data: dict[str, Any]) -> int:
        handles = self._registry.connections_for(user_id)
        if not handles:
            await log_info(
                f"Пользователь {user_id} не подключён, событие {event.value} отброшено",
                type_msg=TypeMsg.DEBUG,
            )
            return 0
        return await self._deliver(handles, event, data)

    async def _send_room(self, conversation_id: int, event: RealtimeEvent, data: dict[str, Any]) -> int:
        handles = self._registry.connections_in(conversation_room(conversation_id))
        return await self._deliver(handles, event, data)

    async def _deliver(self, handles: Iterable[Hashable], event: RealtimeEvent, data: dict[str, Any]) -> int:
        message = {"event": event.value, "data": data}
        sent = 0
        failed: list[Hashable] = []

        for handle in handles:
            try:
                await handle.send_json(message)
                sent += 1
            except Exception as e:
                await log_warning(f"Не удалось отправить {event.value}: {e}")
                failed.append(handle)

        # Разорванные соединения удаляем из реестра
        for handle in failed:
            await self._registry.unregister(handle)

        self._total_sent += sent
        return sent
