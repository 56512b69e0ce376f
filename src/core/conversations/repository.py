# src/core/conversations/repository.py
"""
Репозиторий чатов и сообщений.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from src.common.constants import ConversationStatus
from src.core.conversations.models import Conversation, ConversationSummary, Message
from src.infra.database import DatabaseManager, affected_rows

CONVERSATION_COLUMNS = """
    id, match_id, user_id, charter_id, status, expires_at, is_archived,
    closed_by, closed_at, created_at, updated_at
"""

MESSAGE_COLUMNS = "id, conversation_id, sender_id, content, is_read, created_at"


class ConversationRepository:
    """Репозиторий чатов."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    # =========================================================================
    # ЧАТЫ
    # =========================================================================

    async def get_by_id(self, conversation_id: int) -> Optional[Conversation]:
        row = await self._db.fetchrow(
            f"SELECT {CONVERSATION_COLUMNS} FROM conversations WHERE id = $1",
            conversation_id,
        )
        return self._row_to_conversation(row) if row else None

    async def get_by_match(self, match_id: int) -> Optional[Conversation]:
        row = await self._db.fetchrow(
            f"SELECT {CONVERSATION_COLUMNS} FROM conversations WHERE match_id = $1",
            match_id,
        )
        return self._row_to_conversation(row) if row else None

    async def create(
        self,
        match_id: int,
        user_id: int,
        charter_id: int,
        expires_at: datetime,
    ) -> Optional[Conversation]:
        """
        Создаёт чат для подбора.

        Returns:
            Новый чат или None, если чат для подбора уже существует
        """
        row = await self._db.fetchrow(
            f"""
            INSERT INTO conversations (match_id, user_id, charter_id, status, expires_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (match_id) DO NOTHING
            RETURNING {CONVERSATION_COLUMNS}
            """,
            match_id,
            user_id,
            charter_id,
            ConversationStatus.ACTIVE.value,
            expires_at,
        )
        return self._row_to_conversation(row) if row else None

    async def mark_expired(self, conversation_id: int) -> bool:
        """Условный переход active → expired."""
        status = await self._db.execute(
            """
            UPDATE conversations
            SET status = $2, closed_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND status = $3
            """,
            conversation_id,
            ConversationStatus.EXPIRED.value,
            ConversationStatus.ACTIVE.value,
        )
        return affected_rows(status) == 1

    async def close(self, conversation_id: int, closed_by: int) -> Optional[Conversation]:
        """Условный переход active → closed."""
        row = await self._db.fetchrow(
            f"""
            UPDATE conversations
            SET status = $2, closed_by = $3, closed_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND status = $4
            RETURNING {CONVERSATION_COLUMNS}
            """,
            conversation_id,
            ConversationStatus.CLOSED.value,
            closed_by,
            ConversationStatus.ACTIVE.value,
        )
        return self._row_to_conversation(row) if row else None

    async def archive(self, conversation_id: int) -> Optional[Conversation]:
        """Выставляет флаг архива."""
        row = await self._db.fetchrow(
            f"""
            UPDATE conversations SET is_archived = TRUE, updated_at = NOW()
            WHERE id = $1
            RETURNING {CONVERSATION_COLUMNS}
            """,
            conversation_id,
        )
        return self._row_to_conversation(row) if row else None

    async def list_active_for_user(self, user_id: int) -> list[ConversationSummary]:
        """Активные чаты пользователя с последним сообщением и числом непрочитанных."""
        rows = await self._db.fetch(
            """
            SELECT c.id, c.match_id, c.user_id, c.charter_id, c.status, c.expires_at,
                   c.is_archived, c.closed_by, c.closed_at, c.created_at, c.updated_at,
                   lm.id AS last_message_id,
                   lm.sender_id AS last_message_sender_id,
                   lm.content AS last_message_content,
                   lm.is_read AS last_message_is_read,
                   lm.created_at AS last_message_created_at,
                   (
                       SELECT COUNT(*) FROM messages m
                       WHERE m.conversation_id = c.id AND m.sender_id <> $1 AND m.is_read = FALSE
                   ) AS unread_count
            FROM conversations c
            LEFT JOIN LATERAL (
                SELECT id, sender_id, content, is_read, created_at
                FROM messages
                WHERE conversation_id = c.id
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            ) lm ON TRUE
            WHERE (c.user_id = $1 OR c.charter_id = $1) AND c.status = $2
            ORDER BY c.updated_at DESC
            """,
            user_id,
            ConversationStatus.ACTIVE.value,
        )

        summaries = []
        for row in rows:
            last_message = None
            if row["last_message_id"] is not None:
                last_message = Message(
                    id=row["last_message_id"],
                    conversation_id=row["id"],
                    sender_id=row["last_message_sender_id"],
                    content=row["last_message_content"],
                    is_read=row["last_message_is_read"],
                    created_at=row["last_message_created_at"],
                )
            summaries.append(ConversationSummary(
                conversation=self._row_to_conversation(row),
                last_message=last_message,
                unread_count=row["unread_count"],
            ))
        return summaries

    # =========================================================================
    # СООБЩЕНИЯ
    # =========================================================================

    async def add_message(self, conversation_id: int, sender_id: int, content: str) -> Message:
        """Сохраняет сообщение и обновляет updated_at чата."""
        row = await self._db.fetchrow(
            f"""
            WITH touched AS (
                UPDATE conversations SET updated_at = NOW() WHERE id = $1
            )
            INSERT INTO messages (conversation_id, sender_id, content)
            VALUES ($1, $2, $3)
            RETURNING {MESSAGE_COLUMNS}
            """,
            conversation_id,
            sender_id,
            content,
        )
        return Message.model_validate(dict(row))

    async def list_messages(self, conversation_id: int) -> list[Message]:
        """История по возрастанию времени."""
        rows = await self._db.fetch(
            f"""
            SELECT {MESSAGE_COLUMNS} FROM messages
            WHERE conversation_id = $1
            ORDER BY created_at ASC, id ASC
            """,
            conversation_id,
        )
        return [Message.model_validate(dict(row)) for row in rows]

    async def mark_read(self, conversation_id: int, reader_id: int) -> int:
        """Отмечает прочитанными чужие сообщения. Возвращает их количество."""
        status = await self._db.execute(
            """
            UPDATE messages SET is_read = TRUE
            WHERE conversation_id = $1 AND sender_id <> $2 AND is_read = FALSE
            """,
            conversation_id,
            reader_id,
        )
        return affected_rows(status)

    # =========================================================================
    # ОЧИСТКА
    # =========================================================================

    async def expire_due(self, now: datetime) -> list[Conversation]:
        """Первая фаза: active и не в архиве с истёкшим сроком → expired."""
        rows = await self._db.fetch(
            f"""
            UPDATE conversations
            SET status = $1, closed_at = NOW(), updated_at = NOW()
            WHERE status = $2 AND is_archived = FALSE AND expires_at < $3
            RETURNING {CONVERSATION_COLUMNS}
            """,
            ConversationStatus.EXPIRED.value,
            ConversationStatus.ACTIVE.value,
            now,
        )
        return [self._row_to_conversation(row) for row in rows]

    async def delete_expired(self, now: datetime) -> list[int]:
        """Вторая фаза: удаляет expired и не в архиве (сообщения каскадом)."""
        rows = await self._db.fetch(
            """
            DELETE FROM conversations
            WHERE status = $1 AND is_archived = FALSE AND expires_at < $2
            RETURNING id
            """,
            ConversationStatus.EXPIRED.value,
            now,
        )
        return [row["id"] for row in rows]

    @staticmethod
    def _row_to_conversation(row: Any) -> Conversation:
        """Преобразует строку БД в модель."""
        return Conversation(
            id=row["id"],
            match_id=row["match_id"],
            user_id=row["user_id"],
            charter_id=row["charter_id"],
            status=ConversationStatus(row["status"]),
            expires_at=row["expires_at"],
            is_archived=row["is_archived"],
            closed_by=row["closed_by"],
            closed_at=row["closed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
