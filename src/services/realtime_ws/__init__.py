# src/services/realtime_ws/__init__.py
"""
Realtime: реестр WebSocket соединений, нотификатор и endpoint /ws.
"""

from src.services.realtime_ws.connection_manager import ConnectionRegistry, conversation_room
from src.services.realtime_ws.notifier import RealtimeNotifier

__all__ = ["ConnectionRegistry", "RealtimeNotifier", "conversation_room"]
