# tests/infra/test_database.py
"""
Тесты для менеджера базы данных.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.infra.database import DatabaseManager, affected_rows, retry_on_connection_error


def _pool_with(conn: MagicMock) -> MagicMock:
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = None
    return pool


@pytest.fixture
def db_manager() -> DatabaseManager:
    """Свежий экземпляр синглтона."""
    DatabaseManager._instance = None
    DatabaseManager._pool = None
    return DatabaseManager()


class TestAffectedRows:
    """Тесты разбора статуса команды."""

    @pytest.mark.parametrize(
        "status,expected",
        [("UPDATE 1", 1), ("UPDATE 0", 0), ("DELETE 3", 3), ("INSERT 0 1", 1), ("", 0), (None, 0), ("BEGIN", 0)],
    )
    def test_parse(self, status, expected) -> None:
        assert affected_rows(status) == expected


class TestRetryOnConnectionError:
    """Тесты для декоратора retry_on_connection_error."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        attempts = 0

        @retry_on_connection_error(max_attempts=3, delay=0)
        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise ConnectionRefusedError("refused")
            return "ok"

        assert await flaky() == "ok"
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_gives_up(self) -> None:
        @retry_on_connection_error(max_attempts=2, delay=0)
        async def down():
            raise ConnectionRefusedError("refused")

        with pytest.raises(ConnectionRefusedError):
            await down()

    @pytest.mark.asyncio
    async def test_query_errors_not_retried(self) -> None:
        attempts = 0

        @retry_on_connection_error(max_attempts=3, delay=0)
        async def bad_query():
            nonlocal attempts
            attempts += 1
            raise ValueError("constraint")

        with pytest.raises(ValueError):
            await bad_query()
        assert attempts == 1


class TestDatabaseManager:
    """Тесты для DatabaseManager."""

    def test_singleton(self, db_manager: DatabaseManager) -> None:
        assert DatabaseManager() is db_manager

    def test_pool_not_initialized(self, db_manager: DatabaseManager) -> None:
        with pytest.raises(RuntimeError, match="Пул соединений не инициализирован"):
            _ = db_manager.pool

    @pytest.mark.asyncio
    async def test_connect_once(self, db_manager: DatabaseManager) -> None:
        with patch("asyncpg.create_pool", new_callable=AsyncMock, return_value=MagicMock()) as create:
            await db_manager.connect(dsn="postgresql://u:p@localhost/flexpress")
            await db_manager.connect(dsn="postgresql://u:p@localhost/flexpress")

        create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect(self, db_manager: DatabaseManager) -> None:
        pool = AsyncMock()
        db_manager._pool = pool

        await db_manager.disconnect()

        pool.close.assert_awaited_once()
        assert db_manager._pool is None

    @pytest.mark.asyncio
    async def test_execute_returns_status(self, db_manager: DatabaseManager) -> None:
        conn = AsyncMock()
        conn.execute.return_value = "UPDATE 1"
        db_manager._pool = _pool_with(conn)

        assert await db_manager.execute("UPDATE users SET credits = $1", 10) == "UPDATE 1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["execute", "fetch", "fetchrow", "fetchval"])
    async def test_query_not_repeated_after_connection_error(self, db_manager: DatabaseManager, method: str) -> None:
        """Обрыв соединения после записи не приводит к повторному INSERT."""
        conn = AsyncMock()
        getattr(conn, method).side_effect = ConnectionResetError("reset")
        db_manager._pool = _pool_with(conn)

        with pytest.raises(ConnectionResetError):
            await getattr(db_manager, method)("INSERT INTO messages (content) VALUES ($1) RETURNING id", "hi")

        getattr(conn, method).assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transaction_yields_connection(self, db_manager: DatabaseManager) -> None:
        conn = MagicMock()
        conn.transaction.return_value.__aenter__.return_value = None
        conn.transaction.return_value.__aexit__.return_value = None
        db_manager._pool = _pool_with(conn)

        async with db_manager.transaction() as tx_conn:
            assert tx_conn is conn

        conn.transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_health_check(self, db_manager: DatabaseManager) -> None:
        conn = AsyncMock()
        conn.fetchval.return_value = 1
        db_manager._pool = _pool_with(conn)

        assert await db_manager.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_without_pool(self, db_manager: DatabaseManager) -> None:
        assert await db_manager.health_check() is False
