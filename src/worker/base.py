# src/worker/base.py
"""
Базовый класс для периодических воркеров.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg


class PeriodicWorker(ABC):
    """
    Базовый класс для воркеров, выполняющих проход по расписанию.
    Ошибка одного прохода логируется, цикл продолжается.
    """

    def __init__(self, interval: float) -> None:
        """
        Args:
            interval: Пауза между проходами (секунды)
        """
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.passes: int = 0
        self.failures: int = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""
        pass

    @abstractmethod
    async def run_once(self) -> None:
        """Один проход воркера."""
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._loop(), name=self.name)
        await log_info(
            f"Воркер {self.name} запущен (интервал {self.interval}с)",
            type_msg=TypeMsg.INFO,
        )

    async def stop(self) -> None:
        """Останавливает воркер."""
        if not self._running:
            return

        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def tick(self) -> bool:
        """
        Выполняет проход и перехватывает ошибку.

        Returns:
            True если проход завершился без ошибки
        """
        self.passes += 1
        try:
            await self.run_once()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            await log_error(f"Ошибка в воркере {self.name}: {e}", exc_info=True)
            return False

    async def _loop(self) -> None:
        while self._running:
            await self.tick()
            await asyncio.sleep(self.interval)
