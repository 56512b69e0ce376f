# src/worker/sweepers.py
"""
Воркеры очистки: истечение поиска и истёкшие чаты.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.worker.base import PeriodicWorker
from src.common.logger import log_info
from src.common.constants import TypeMsg

if TYPE_CHECKING:
    from src.core.conversations.service import ConversationService
    from src.core.matching.service import MatchingService


class MatchExpiryWorker(PeriodicWorker):
    """Переводит подборы в searching с истёкшим сроком в expired."""

    def __init__(self, matching: "MatchingService", interval: Optional[float] = None) -> None:
        from src.config import settings

        super().__init__(interval if interval is not None else settings.matching.MATCH_SWEEP_INTERVAL)
        self._matching = matching

    @property
    def name(self) -> str:
        return "MatchExpiryWorker"

    async def run_once(self) -> None:
        expired = await self._matching.expire_stale_matches()
        if expired:
            await log_info(f"{self.name}: истекло подборов: {expired}", type_msg=TypeMsg.INFO)


class ConversationSweepWorker(PeriodicWorker):
    """
    Помечает просроченные чаты как expired и удаляет
    истёкшие неархивные чаты вместе с сообщениями.
    """

    def __init__(self, conversations: "ConversationService", interval: Optional[float] = None) -> None:
        from src.config import settings

        super().__init__(
            interval if interval is not None else settings.conversations.CONVERSATION_SWEEP_INTERVAL
        )
        self._conversations = conversations

    @property
    def name(self) -> str:
        return "ConversationSweepWorker"

    async def run_once(self) -> None:
        expired, deleted = await self._conversations.sweep_expired()
        if expired or deleted:
            await log_info(
                f"{self.name}: истекло чатов: {expired}, удалено: {deleted}",
                type_msg=TypeMsg.INFO,
            )
