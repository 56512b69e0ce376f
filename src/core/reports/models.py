# src/core/reports/models.py
"""
Модели жалоб (модерация чатов).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import ReportStatus


class Report(BaseModel):
    """Жалоба участника чата на другую сторону."""

    id: int
    conversation_id: int
    reporter_id: int
    reported_id: int
    reason: str
    description: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def involves(self, user_id: int) -> bool:
        return user_id in (self.reporter_id, self.reported_id)


class CreateReportRequest(BaseModel):
    """Тело запроса создания жалобы."""

    conversation_id: int
    reported_id: int
    reason: str = Field(..., description="Причина (до 200 символов)")
    description: Optional[str] = Field(None, description="Описание (до 1000 символов)")


class UpdateReportRequest(BaseModel):
    """Тело запроса администратора."""

    status: Optional[ReportStatus] = None
    admin_notes: Optional[str] = Field(None, description="Заметки (до 2000 символов)")
