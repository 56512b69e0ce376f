# src/worker/__init__.py
"""
Фоновые воркеры периодической очистки.
"""

from src.worker.base import PeriodicWorker
from src.worker.sweepers import ConversationSweepWorker, MatchExpiryWorker

__all__ = ["PeriodicWorker", "ConversationSweepWorker", "MatchExpiryWorker"]
