# src/core/__init__.py
"""
Доменный слой (Core Domain).
Подбор чартеров, чаты, модерация, поездки и кредитный леджер.
"""

from src.core.matching import MatchingService, TravelMatch
from src.core.conversations import Conversation, ConversationService
from src.core.reports import Report, ReportService

__all__ = [
    "MatchingService",
    "TravelMatch",
    "Conversation",
    "ConversationService",
    "Report",
    "ReportService",
]
