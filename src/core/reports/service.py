# src/core/reports/service.py
"""
Сервис жалоб.
Создание жалобы архивирует чат, чтобы переписка сохранилась для модерации.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import ReportStatus, TypeMsg, UserRole
from src.common.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailureError,
)
from src.common.logger import log_info
from src.core.conversations.service import ConversationService
from src.core.reports.models import Report
from src.core.reports.repository import ReportRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus, EventTypes, publish_event

REASON_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
ADMIN_NOTES_MAX_LENGTH = 2000

_CLOSING_STATUSES = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class ReportService:
    """Сервис жалоб."""

    def __init__(
        self,
        db: DatabaseManager,
        conversations: ConversationService,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            conversations: Сервис чатов (архивирование)
            event_bus: Шина событий
        """
        self._repo = ReportRepository(db)
        self._conversations = conversations
        self._event_bus = event_bus

    async def create_report(
        self,
        reporter_id: int,
        conversation_id: int,
        reported_id: int,
        reason: str,
        description: Optional[str] = None,
    ) -> Report:
        """
        Создаёт жалобу на другую сторону чата и архивирует чат.

        Raises:
            NotFoundError: Чат не найден
            ForbiddenError: Заявитель не участник чата
            ValidationFailureError: Жалоба не на другую сторону или текст вне лимитов
            ConflictError: Заявитель уже жаловался по этому чату
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailureError("Укажите причину жалобы")
        if len(reason) > REASON_MAX_LENGTH:
            raise ValidationFailureError(f"Причина длиннее {REASON_MAX_LENGTH} символов")
        if description is not None:
            description = description.strip() or None
            if description and len(description) > DESCRIPTION_MAX_LENGTH:
                raise ValidationFailureError(f"Описание длиннее {DESCRIPTION_MAX_LENGTH} символов")

        conversation = await self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Чат не найден")
        if not conversation.is_participant(reporter_id):
            raise ForbiddenError("Вы не участник этого чата")
        if reported_id != conversation.other_participant(reporter_id):
            raise ValidationFailureError("Жаловаться можно только на другую сторону чата")

        if await self._repo.exists(conversation_id, reporter_id):
            raise ConflictError("Вы уже отправили жалобу по этому чату")

        await self._conversations.archive_conversation(conversation_id)

        report = await self._repo.create(conversation_id, reporter_id, reported_id, reason, description)
        if report is None:
            raise ConflictError("Вы уже отправили жалобу по этому чату")

        await log_info(
            f"Жалоба {report.id}: {reporter_id} на {reported_id} по чату {conversation_id}",
            type_msg=TypeMsg.INFO,
        )
        await publish_event(
            self._event_bus,
            EventTypes.REPORT_CREATED,
            {"report_id": report.id, "conversation_id": conversation_id, "reported_id": reported_id},
        )
        return report

    async def list_reports(self, status: Optional[ReportStatus] = None) -> list[Report]:
        return await self._repo.list_all(status)

    async def get_report(self, report_id: int, user_id: int, role: UserRole) -> Report:
        """Жалоба для администратора или одной из сторон."""
        report = await self._repo.get_by_id(report_id)
        if report is None:
            raise NotFoundError("Жалоба не найдена")
        if role != UserRole.ADMIN and not report.involves(user_id):
            raise ForbiddenError("Нет доступа к жалобе")
        return report

    async def update_report(
        self,
        report_id: int,
        admin_id: int,
        status: Optional[ReportStatus] = None,
        admin_notes: Optional[str] = None,
    ) -> Report:
        """
        Решение администратора. Перевод в resolved/dismissed
        фиксирует, кто и когда закрыл жалобу.
        """
        if admin_notes is not None and len(admin_notes) > ADMIN_NOTES_MAX_LENGTH:
            raise ValidationFailureError(f"Заметки длиннее {ADMIN_NOTES_MAX_LENGTH} символов")

        resolved_by = admin_id if status in _CLOSING_STATUSES else None
        report = await self._repo.update(report_id, status, admin_notes, resolved_by)
        if report is None:
            raise NotFoundError("Жалоба не найдена")

        await log_info(
            f"Жалоба {report_id} обновлена администратором {admin_id}: {report.status.value}",
            type_msg=TypeMsg.INFO,
        )
        await publish_event(
            self._event_bus,
            EventTypes.REPORT_UPDATED,
            {"report_id": report_id, "status": report.status.value, "admin_id": admin_id},
        )
        return report

    async def list_reports_by_user(self, user_id: int) -> list[Report]:
        return await self._repo.list_by_reporter(user_id)

    async def list_reports_against_user(self, user_id: int) -> list[Report]:
        return await self._repo.list_by_reported(user_id)
