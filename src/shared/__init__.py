# src/shared/__init__.py
"""
Общий код слоёв API и realtime.

Модули:
- models: конверты ответов и статус здоровья
"""

__all__: list[str] = []
