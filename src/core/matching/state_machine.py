# src/core/matching/state_machine.py
"""
Допустимые переходы статусов подбора.
"""

from __future__ import annotations

from src.common.constants import MatchStatus


class MatchStateMachine:
    """searching → pending → {accepted, rejected}; accepted → completed; не финальные → cancelled."""

    ALLOWED_TRANSITIONS: dict[MatchStatus, list[MatchStatus]] = {
        MatchStatus.SEARCHING: [MatchStatus.PENDING, MatchStatus.CANCELLED, MatchStatus.EXPIRED],
        MatchStatus.PENDING: [MatchStatus.ACCEPTED, MatchStatus.REJECTED, MatchStatus.CANCELLED],
        MatchStatus.ACCEPTED: [MatchStatus.COMPLETED, MatchStatus.CANCELLED],
        MatchStatus.REJECTED: [MatchStatus.CANCELLED],
        MatchStatus.EXPIRED: [MatchStatus.CANCELLED],
        MatchStatus.COMPLETED: [],
        MatchStatus.CANCELLED: [],
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = MatchStatus(current_status)
            new = MatchStatus(new_status)
        except ValueError:
            return False
        return new in MatchStateMachine.ALLOWED_TRANSITIONS.get(curr, [])

    @staticmethod
    def sources_for(new_status: MatchStatus) -> list[MatchStatus]:
        """Статусы, из которых разрешён переход в new_status."""
        return [
            status
            for status, targets in MatchStateMachine.ALLOWED_TRANSITIONS.items()
            if new_status in targets
        ]
