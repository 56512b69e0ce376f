# src/services/realtime_ws/connection_manager.py
"""
Реестр WebSocket соединений.

Два индекса в памяти процесса: пользователь → соединения
и комната чата → соединения. Пользователь может держать несколько
соединений одновременно. Пустые множества удаляются.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Hashable, Optional


def conversation_room(conversation_id: int) -> str:
    """Имя комнаты чата."""
    return f"conversation:{conversation_id}"


@dataclass
class ConnectionInfo:
    """Информация о соединении."""
    handle: Any
    user_id: Optional[int] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rooms: set[str] = field(default_factory=set)


class ConnectionRegistry:
    """
    Реестр соединений. Создаётся приложением и передаётся
    нотификатору и WebSocket endpoint'у.

    Поддерживает:
    - Регистрацию и удаление соединений
    - Вход в комнату и выход из неё
    - Поиск соединений пользователя и комнаты
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

        # handle -> ConnectionInfo
        self._connections: dict[Hashable, ConnectionInfo] = {}

        # user_id -> handles
        self._by_identity: dict[int, set[Hashable]] = {}

        # room -> handles
        self._rooms: dict[str, set[Hashable]] = {}

        self._total_connections: int = 0

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    async def register(self, handle: Hashable, user_id: Optional[int] = None) -> None:
        """Регистрирует соединение (пользователь может быть ещё неизвестен)."""
        async with self._lock:
            info = self._connections.get(handle)
            if info is None:
                info = ConnectionInfo(handle=handle)
                self._connections[handle] = info
                self._total_connections += 1
            if user_id is not None:
                self._bind_identity(info, user_id)

    async def join_room(self, handle: Hashable, room: str, user_id: int) -> None:
        """Добавляет соединение в комнату и привязывает его к пользователю."""
        async with self._lock:
            info = self._connections.get(handle)
            if info is None:
                info = ConnectionInfo(handle=handle)
                self._connections[handle] = info
                self._total_connections += 1
            self._bind_identity(info, user_id)
            info.rooms.add(room)
            self._rooms.setdefault(room, set()).add(handle)

    async def leave_room(self, handle: Hashable, room: str) -> None:
        async with self._lock:
            info = self._connections.get(handle)
            if info is not None:
                info.rooms.discard(room)
            self._discard(self._rooms, room, handle)

    async def unregister(self, handle: Hashable) -> Optional[ConnectionInfo]:
        """
        Удаляет соединение из всех комнат и индекса пользователя.

        Returns:
            Информация об удалённом соединении или None
        """
        async with self._lock:
            info = self._connections.pop(handle, None)
            if info is None:
                return None
            for room in info.rooms:
                self._discard(self._rooms, room, handle)
            if info.user_id is not None:
                self._discard(self._by_identity, info.user_id, handle)
            return info

    def connections_for(self, user_id: int) -> list[Hashable]:
        """Соединения пользователя (копия)."""
        return list(self._by_identity.get(user_id, ()))

    def connections_in(self, room: str) -> list[Hashable]:
        """Соединения комнаты (копия)."""
        return list(self._rooms.get(room, ()))

    def user_of(self, handle: Hashable) -> Optional[int]:
        info = self._connections.get(handle)
        return info.user_id if info else None

    def rooms_of(self, handle: Hashable) -> set[str]:
        info = self._connections.get(handle)
        return set(info.rooms) if info else set()

    def stats(self) -> dict[str, Any]:
        """Статистика соединений."""
        return {
            "active_connections": len(self._connections),
            "connected_users": len(self._by_identity),
            "active_rooms": len(self._rooms),
            "total_connections_ever": self._total_connections,
        }

    def _bind_identity(self, info: ConnectionInfo, user_id: int) -> None:
        if info.user_id is not None and info.user_id != user_id:
            self._discard(self._by_identity, info.user_id, info.handle)
        info.user_id = user_id
        self._by_identity.setdefault(user_id, set()).add(info.handle)

    @staticmethod
    def _discard(index: dict, key: Any, handle: Hashable) -> None:
        handles = index.get(key)
        if handles is None:
            return
        handles.discard(handle)
        if not handles:
            del index[key]
