# tests/worker/test_sweepers.py
"""
Тесты воркеров очистки и их запуска.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.worker.runner import build_workers, start_workers, stop_workers
from src.worker.sweepers import ConversationSweepWorker, MatchExpiryWorker


class TestMatchExpiryWorker:
    """Тесты MatchExpiryWorker."""

    @pytest.mark.asyncio
    async def test_run_once(self) -> None:
        matching = AsyncMock()
        matching.expire_stale_matches.return_value = 3
        worker = MatchExpiryWorker(matching, interval=5)

        await worker.run_once()

        matching.expire_stale_matches.assert_awaited_once()
        assert worker.interval == 5

    @pytest.mark.asyncio
    async def test_failure_counted(self) -> None:
        matching = AsyncMock()
        matching.expire_stale_matches.side_effect = ConnectionError("db")
        worker = MatchExpiryWorker(matching, interval=5)

        assert await worker.tick() is False
        assert worker.failures == 1

    def test_default_interval(self) -> None:
        from src.config import settings

        assert MatchExpiryWorker(AsyncMock()).interval == settings.matching.MATCH_SWEEP_INTERVAL


class TestConversationSweepWorker:
    """Тесты ConversationSweepWorker."""

    @pytest.mark.asyncio
    async def test_run_once(self) -> None:
        conversations = AsyncMock()
        conversations.sweep_expired.return_value = (2, 1)
        worker = ConversationSweepWorker(conversations, interval=60)

        await worker.run_once()

        conversations.sweep_expired.assert_awaited_once()

    def test_default_interval(self) -> None:
        from src.config import settings

        worker = ConversationSweepWorker(AsyncMock())

        assert worker.interval == settings.conversations.CONVERSATION_SWEEP_INTERVAL


class TestRunner:
    """Тесты сборки и запуска воркеров."""

    def test_build_workers(self) -> None:
        workers = build_workers(AsyncMock(), AsyncMock())

        assert [w.name for w in workers] == ["MatchExpiryWorker", "ConversationSweepWorker"]

    @pytest.mark.asyncio
    async def test_start_and_stop_in_reverse(self) -> None:
        order: list[str] = []
        first, second = AsyncMock(), AsyncMock()
        first.stop.side_effect = lambda: order.append("first")
        second.stop.side_effect = lambda: order.append("second")

        await start_workers([first, second])
        await stop_workers([first, second])

        first.start.assert_awaited_once()
        second.start.assert_awaited_once()
        assert order == ["second", "first"]
