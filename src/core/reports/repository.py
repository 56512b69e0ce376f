# src/core/reports/repository.py
"""
Репозиторий жалоб.
"""

from __future__ import annotations

from typing import Any, Optional

import asyncpg

from src.common.constants import ReportStatus
from src.core.reports.models import Report
from src.infra.database import DatabaseManager

REPORT_COLUMNS = """
    id, conversation_id, reporter_id, reported_id, reason, description, status,
    admin_notes, resolved_at, resolved_by, created_at, updated_at
"""


class ReportRepository:
    """Репозиторий жалоб."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def exists(self, conversation_id: int, reporter_id: int) -> bool:
        value = await self._db.fetchval(
            "SELECT EXISTS(SELECT 1 FROM reports WHERE conversation_id = $1 AND reporter_id = $2)",
            conversation_id,
            reporter_id,
        )
        return bool(value)

    async def create(
        self,
        conversation_id: int,
        reporter_id: int,
        reported_id: int,
        reason: str,
        description: Optional[str],
    ) -> Optional[Report]:
        """
        Создаёт жалобу в статусе pending.

        Returns:
            Жалоба или None при нарушении уникальности (conversation_id, reporter_id)
        """
        try:
            row = await self._db.fetchrow(
                f"""
                INSERT INTO reports (conversation_id, reporter_id, reported_id, reason, description, status)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {REPORT_COLUMNS}
                """,
                conversation_id,
                reporter_id,
                reported_id,
                reason,
                description,
                ReportStatus.PENDING.value,
            )
        except asyncpg.UniqueViolationError:
            return None
        return self._row_to_report(row)

    async def get_by_id(self, report_id: int) -> Optional[Report]:
        row = await self._db.fetchrow(f"SELECT {REPORT_COLUMNS} FROM reports WHERE id = $1", report_id)
        return self._row_to_report(row) if row else None

    async def list_all(self, status: Optional[ReportStatus] = None) -> list[Report]:
        """Все жалобы, новые сначала."""
        rows = await self._db.fetch(
            f"""
            SELECT {REPORT_COLUMNS} FROM reports
            WHERE ($1::varchar IS NULL OR status = $1)
            ORDER BY created_at DESC
            """,
            status.value if status else None,
        )
        return [self._row_to_report(row) for row in rows]

    async def list_by_reporter(self, user_id: int) -> list[Report]:
        rows = await self._db.fetch(
            f"SELECT {REPORT_COLUMNS} FROM reports WHERE reporter_id = $1 ORDER BY created_at DESC",
            user_id,
        )
        return [self._row_to_report(row) for row in rows]

    async def list_by_reported(self, user_id: int) -> list[Report]:
        rows = await self._db.fetch(
            f"SELECT {REPORT_COLUMNS} FROM reports WHERE reported_id = $1 ORDER BY created_at DESC",
            user_id,
        )
        return [self._row_to_report(row) for row in rows]

    async def update(
        self,
        report_id: int,
        status: Optional[ReportStatus],
        admin_notes: Optional[str],
        resolved_by: Optional[int],
    ) -> Optional[Report]:
        """
        Обновляет статус и заметки. resolved_by не None означает
        закрытие жалобы: проставляются resolved_at и resolved_by.
        """
        row = await self._db.fetchrow(
            f"""
            UPDATE reports
            SET status = COALESCE($2, status),
                admin_notes = COALESCE($3, admin_notes),
                resolved_by = COALESCE($4, resolved_by),
                resolved_at = CASE WHEN $4::bigint IS NOT NULL THEN NOW() ELSE resolved_at END,
                updated_at = NOW()
            WHERE id = $1
            RETURNING {REPORT_COLUMNS}
            """,
            report_id,
            status.value if status else None,
            admin_notes,
            resolved_by,
        )
        return self._row_to_report(row) if row else None

    @staticmethod
    def _row_to_report(row: Any) -> Report:
        """Преобразует строку БД в модель."""
        return Report(
            id=row["id"],
            conversation_id=row["conversation_id"],
            reporter_id=row["reporter_id"],
            reported_id=row["reported_id"],
            reason=row["reason"],
            description=row["description"],
            status=ReportStatus(row["status"]),
            admin_notes=row["admin_notes"],
            resolved_at=row["resolved_at"],
            resolved_by=row["resolved_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
