# src/core/matching/__init__.py
"""
Домен подбора.
Машина состояний подбора чартера под заявку на переезд.
"""

from src.core.matching.models import (
    CharterCandidate,
    CreateMatchRequest,
    MatchCreationResult,
    TravelMatch,
)
from src.core.matching.service import MatchDetails, MatchingService
from src.core.matching.state_machine import MatchStateMachine

__all__ = [
    "CharterCandidate",
    "CreateMatchRequest",
    "MatchCreationResult",
    "TravelMatch",
    "MatchDetails",
    "MatchingService",
    "MatchStateMachine",
]
