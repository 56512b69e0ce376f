# src/worker/runner.py
"""
Запуск воркеров очистки отдельным процессом.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, List

from src.worker.base import PeriodicWorker
from src.worker.sweepers import ConversationSweepWorker, MatchExpiryWorker
from src.infra.database import init_db, close_db, get_db
from src.infra.redis_client import init_redis, close_redis, get_redis
from src.infra.event_bus import init_event_bus, close_event_bus, get_event_bus
from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg

if TYPE_CHECKING:
    from src.core.conversations.service import ConversationService
    from src.core.matching.service import MatchingService


def build_workers(
    matching: MatchingService,
    conversations: ConversationService,
) -> List[PeriodicWorker]:
    """Воркеры поверх готовых сервисов."""
    return [
        MatchExpiryWorker(matching),
        ConversationSweepWorker(conversations),
    ]


async def start_workers(workers: List[PeriodicWorker]) -> None:
    for worker in workers:
        await worker.start()
    await log_info(f"Запущено {len(workers)} воркеров", type_msg=TypeMsg.INFO)


async def stop_workers(workers: List[PeriodicWorker]) -> None:
    for worker in reversed(workers):
        await worker.stop()


async def run_workers(init_infra: bool = True) -> None:
    """
    Запускает воркеры очистки и ждёт остановки.

    Args:
        init_infra: Если True, инициализирует инфраструктуру (БД, Redis, RabbitMQ).
                    При запуске из API-процесса инфраструктура уже готова.
    """
    from src.core.conversations.service import ConversationService
    from src.core.matching.service import MatchingService

    if init_infra:
        await log_info("Инициализация инфраструктуры для воркеров...", type_msg=TypeMsg.DEBUG)
        await init_db()
        await init_redis()
        await init_event_bus()

    # Отдельный процесс не держит WebSocket соединений: push только из API
    db = get_db()
    event_bus = get_event_bus()
    conversations = ConversationService(db, event_bus=event_bus)
    matching = MatchingService(db, redis=get_redis(), event_bus=event_bus, conversations=conversations)
    workers = build_workers(matching, conversations)

    try:
        await start_workers(workers)

        # Ждём завершения (Ctrl+C)
        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}")
    finally:
        await stop_workers(workers)

        if init_infra:
            await close_event_bus()
            await close_redis()
            await close_db()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
