# src/core/conversations/models.py
"""
Модели чатов и сообщений.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import ConversationStatus


class Conversation(BaseModel):
    """Временный чат двух сторон принятого подбора."""

    id: int = Field(..., description="ID чата")
    match_id: int = Field(..., description="Подбор (1:1)")
    user_id: int = Field(..., description="Заказчик")
    charter_id: int = Field(..., description="Чартер")
    status: ConversationStatus = Field(ConversationStatus.ACTIVE)
    expires_at: datetime = Field(..., description="Окончание чата")
    is_archived: bool = Field(False, description="Архив защищает от удаления")
    closed_by: Optional[int] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.user_id, self.charter_id)

    def other_participant(self, user_id: int) -> int:
        """Вторая сторона чата."""
        return self.charter_id if user_id == self.user_id else self.user_id


class Message(BaseModel):
    """Сообщение чата."""

    id: int
    conversation_id: int
    sender_id: int
    content: str
    is_read: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationSummary(BaseModel):
    """Чат в списке пользователя: последнее сообщение и счётчик непрочитанных."""

    conversation: Conversation
    last_message: Optional[Message] = None
    unread_count: int = 0


class SendMessageRequest(BaseModel):
    """Тело запроса отправки сообщения."""

    content: str = Field(..., description="Текст сообщения")
