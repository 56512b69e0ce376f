# src/services/__init__.py
"""
Внешние поверхности приложения.

Сервисы:
- api: REST API подборов, поездок, чатов и жалоб (FastAPI)
- realtime_ws: WebSocket-шлюз событий чатов и подборов
"""

__all__: list[str] = []
