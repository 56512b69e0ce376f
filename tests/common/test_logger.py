# tests/common/test_logger.py
"""
Тесты для модуля логирования (src/common/logger.py).
"""

from __future__ import annotations

import json
import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from src.common.constants import TypeMsg
from src.common.logger import (
    DEFAULT_LOGGER,
    ColoredFormatter,
    JsonFormatter,
    _get_caller_info,
    _loggers,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
    setup_logging,
)


def _record(level: int = logging.INFO, msg: str = "Подбор создан", exc_info=None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="flexpress",
        level=level,
        pathname="service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.module = "service"
    record.funcName = "create_match"
    return record


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Подбор создан"
        assert data["function"] == "create_match"
        assert data["line"] == 42
        assert data["timestamp"].endswith("Z")

    def test_extra_data(self) -> None:
        record = _record()
        record.extra_data = {"match_id": 10}

        data = json.loads(JsonFormatter().format(record))

        assert data["extra"] == {"match_id": 10}

    def test_exception(self) -> None:
        try:
            raise ValueError("сломалось")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(_record(logging.ERROR, exc_info=exc_info)))

        assert "ValueError" in data["exception"]


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_basic(self) -> None:
        result = ColoredFormatter().format(_record())

        assert "[INFO]" in result
        assert "Подбор создан" in result
        assert "\033[" in result

    def test_caller_info(self) -> None:
        record = _record(logging.DEBUG)
        record.extra_data = {
            "caller_function": "select_charter",
            "caller_module": "src.core.matching.service",
            "caller_file": "service.py",
            "caller_line": 231,
        }

        result = ColoredFormatter().format(record)

        assert "src.core.matching.service.select_charter()" in result
        assert "service.py:231" in result


class TestGetLogger:
    """Тесты для get_logger и setup_logging."""

    def setup_method(self) -> None:
        _loggers.pop("test_flexpress_logger", None)

    def test_cached(self) -> None:
        first = get_logger("test_flexpress_logger")
        second = get_logger("test_flexpress_logger")

        assert first is second
        assert first.handlers
        assert first.propagate is False

    def test_setup_logging_idempotent(self) -> None:
        setup_logging()
        setup_logging()

        assert DEFAULT_LOGGER in _loggers
        assert logging.getLogger("asyncpg").level == logging.WARNING


class TestGetCallerInfo:
    """Тесты для _get_caller_info."""

    def test_reports_calling_function(self) -> None:
        def via_log_function():
            return _get_caller_info()

        info = via_log_function()

        assert info["caller_function"] == "test_reports_calling_function"
        assert info["caller_file"] == "test_logger.py"


class TestLogFunctions:
    """Тесты для асинхронных функций логирования."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "type_msg,method",
        [
            (TypeMsg.INFO, "info"),
            (TypeMsg.DEBUG, "debug"),
            (TypeMsg.WARNING, "warning"),
            (TypeMsg.ERROR, "error"),
            (TypeMsg.CRITICAL, "critical"),
        ],
    )
    async def test_level_dispatch(self, type_msg, method) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_info("Сообщение", type_msg=type_msg, extra={"trip_id": 100})

        log_call = getattr(logger, method)
        log_call.assert_called_once()
        assert log_call.call_args.kwargs["extra"]["extra_data"]["trip_id"] == 100

    @pytest.mark.asyncio
    async def test_shortcuts(self) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_debug("d")
            await log_warning("w")

        logger.debug.assert_called_once()
        logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_error_exc_info(self) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_error("Ошибка воркера", exc_info=True)

        assert logger.error.call_args.kwargs["exc_info"] is True

    @pytest.mark.asyncio
    async def test_custom_logger_name(self) -> None:
        with patch("src.common.logger.get_logger") as mock_get_logger:
            await log_info("x", logger_name="worker")

        mock_get_logger.assert_called_once_with("worker")
