#!/usr/bin/env python3
# main.py
"""
Главная точка входа Flexpress Core.
Запускает API (с воркерами очистки) или только воркеры.

Режим: первый аргумент командной строки или переменная COMPONENT_MODE.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg

VALID_MODES = ("api", "worker")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_api() -> None:
    """Запускает HTTP/WebSocket API; инфраструктура и воркеры поднимаются в lifespan."""
    import uvicorn

    await log_info(
        f"Запуск API на {settings.api.API_HOST}:{settings.api.API_PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.api.app:app",
        host=settings.api.API_HOST,
        port=settings.api.API_PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("API: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_worker() -> None:
    """Запускает только воркеры очистки."""
    from src.worker.runner import run_workers

    await run_workers(init_infra=True)


def resolve_mode(argv: list[str]) -> str:
    """Режим из аргументов или окружения; по умолчанию api."""
    if len(argv) > 1:
        return argv[1].lower()
    return os.getenv("COMPONENT_MODE", "api").lower()


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (api, worker)
    """
    setup_logging()
    setup_signal_handlers()

    mode = mode or resolve_mode(sys.argv)
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим '{mode}'. Допустимые: {', '.join(VALID_MODES)}")
        sys.exit(2)

    await log_info(
        f"Flexpress Core v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    runner = run_api if mode == "api" else run_worker
    task = asyncio.create_task(runner())
    _running_tasks.append(task)

    try:
        await task
    except asyncio.CancelledError:
        await log_info("Остановка...", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
