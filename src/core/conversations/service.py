# src/core/conversations/service.py
"""
Сервис временных чатов.

Чат открывается при принятии подбора, живёт CONVERSATION_TTL_HOURS часов
и удаляется периодической очисткой, если не помещён в архив.
Истечение проверяется и лениво (при отправке), и очисткой.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.common.constants import ConversationStatus, MatchStatus, TypeMsg
from src.common.date_utils import add_hours, is_past, now_local
from src.common.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)
from src.common.logger import log_info, log_warning
from src.core.conversations.models import Conversation, ConversationSummary, Message
from src.core.conversations.repository import ConversationRepository
from src.core.matching.repository import MatchRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus, EventTypes, publish_event

if TYPE_CHECKING:
    from src.services.realtime_ws.notifier import RealtimeNotifier


class ConversationService:
    """
    Сервис чатов.

    Реализует:
    - Идемпотентное создание чата для принятого подбора
    - Отправку и чтение сообщений с проверкой участия
    - Закрытие и архивирование
    - Двухфазную очистку истёкших чатов
    """

    def __init__(
        self,
        db: DatabaseManager,
        notifier: Optional[RealtimeNotifier] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            notifier: Realtime-уведомления (None — без push)
            event_bus: Шина событий (None — без публикации)
        """
        from src.config import settings

        self._repo = ConversationRepository(db)
        self._matches = MatchRepository(db)
        self._notifier = notifier
        self._event_bus = event_bus
        self._ttl_hours = settings.conversations.CONVERSATION_TTL_HOURS
        self._max_length = settings.conversations.MESSAGE_MAX_LENGTH

    # =========================================================================
    # СОЗДАНИЕ И ЧТЕНИЕ
    # =========================================================================

    async def create_conversation(self, match_id: int) -> Conversation:
        """
        Открывает чат для принятого подбора.
        Повторный вызов возвращает уже существующий чат.

        Raises:
            NotFoundError: Подбор не найден
            InvalidStateError: Подбор не в статусе accepted или без чартера
        """
        match = await self._matches.get_by_id(match_id)
        if match is None:
            raise NotFoundError("Подбор не найден")
        if match.status != MatchStatus.ACCEPTED:
            raise InvalidStateError("Чат открывается только для принятого подбора", match.status.value)
        if match.charter_id is None:
            raise InvalidStateError("Чартер не назначен", match.status.value)

        existing = await self._repo.get_by_match(match_id)
        if existing is not None:
            return existing

        conversation = await self._repo.create(
            match_id=match_id,
            user_id=match.user_id,
            charter_id=match.charter_id,
            expires_at=add_hours(self._ttl_hours),
        )
        if conversation is None:
            # Параллельный вызов успел создать чат
            existing = await self._repo.get_by_match(match_id)
            if existing is None:
                raise NotFoundError("Чат не найден")
            return existing

        await log_info(
            f"Чат {conversation.id} создан для подбора {match_id}, истекает {conversation.expires_at.isoformat()}",
            type_msg=TypeMsg.INFO,
        )

        if self._notifier is not None:
            payload = conversation.model_dump(mode="json")
            await self._notifier.notify_new_conversation(conversation.user_id, payload)
            await self._notifier.notify_new_conversation(conversation.charter_id, payload)

        await publish_event(
            self._event_bus,
            EventTypes.CONVERSATION_CREATED,
            {"conversation_id": conversation.id, "match_id": match_id},
        )
        return conversation

    async def get_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        """Чат для участника."""
        return await self._get_for_participant(conversation_id, user_id)

    async def get_by_id(self, conversation_id: int) -> Optional[Conversation]:
        """Чат без проверки участия (для внутренних вызовов)."""
        return await self._repo.get_by_id(conversation_id)

    async def is_participant(self, conversation_id: int, user_id: int) -> bool:
        conversation = await self._repo.get_by_id(conversation_id)
        return conversation is not None and conversation.is_participant(user_id)

    async def get_user_conversations(self, user_id: int) -> list[ConversationSummary]:
        """Активные чаты пользователя, последние обновлённые сначала."""
        return await self._repo.list_active_for_user(user_id)

    # =========================================================================
    # СООБЩЕНИЯ
    # =========================================================================

    async def send_message(self, conversation_id: int, sender_id: int, content: str) -> Message:
        """
        Отправляет сообщение и рассылает его в комнату чата.

        Args:
            conversation_id: ID чата
            sender_id: ID отправителя (участник)
            content: Текст (1..MESSAGE_MAX_LENGTH символов после strip)

        Raises:
            InvalidStateError: Чат не активен или срок истёк
                (во втором случае чат переводится в expired)
        """
        text = (content or "").strip()
        if not text:
            raise ValidationFailureError("Сообщение не может быть пустым")
        if len(text) > self._max_length:
            raise ValidationFailureError(f"Сообщение длиннее {self._max_length} символов")

        conversation = await self._get_for_participant(conversation_id, sender_id)

        if conversation.status != ConversationStatus.ACTIVE:
            raise InvalidStateError("Чат не активен", conversation.status.value)

        if is_past(conversation.expires_at):
            await self._expire(conversation)
            raise InvalidStateError("Срок чата истёк", ConversationStatus.EXPIRED.value)

        message = await self._repo.add_message(conversation_id, sender_id, text)

        if self._notifier is not None:
            await self._notifier.broadcast_message(conversation_id, message.model_dump(mode="json"))

        return message

    async def get_messages(self, conversation_id: int, user_id: int) -> list[Message]:
        """
        История сообщений по возрастанию времени.
        Побочно отмечает прочитанными сообщения другой стороны;
        ошибка отметки не влияет на результат.
        """
        await self._get_for_participant(conversation_id, user_id)
        messages = await self._repo.list_messages(conversation_id)

        try:
            marked = await self._repo.mark_read(conversation_id, user_id)
            if marked:
                await log_info(
                    f"Чат {conversation_id}: {marked} сообщений прочитано пользователем {user_id}",
                    type_msg=TypeMsg.DEBUG,
                )
        except Exception as e:
            await log_warning(f"Не удалось отметить сообщения чата {conversation_id} прочитанными: {e}")

        return messages

    # =========================================================================
    # ЗАКРЫТИЕ И АРХИВ
    # =========================================================================

    async def close_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        """
        Закрывает чат по инициативе участника.

        Raises:
            InvalidStateError: Чат уже закрыт или истёк
        """
        conversation = await self._get_for_participant(conversation_id, user_id)
        if conversation.status != ConversationStatus.ACTIVE:
            raise InvalidStateError("Чат уже не активен", conversation.status.value)

        closed = await self._repo.close(conversation_id, user_id)
        if closed is None:
            current = await self._repo.get_by_id(conversation_id)
            status = current.status.value if current else ConversationStatus.EXPIRED.value
            raise InvalidStateError("Чат уже не активен", status)

        await log_info(f"Чат {conversation_id} закрыт пользователем {user_id}", type_msg=TypeMsg.INFO)

        if self._notifier is not None:
            await self._notifier.notify_conversation_closed(conversation_id, user_id)

        await publish_event(
            self._event_bus,
            EventTypes.CONVERSATION_CLOSED,
            {"conversation_id": conversation_id, "closed_by": user_id},
        )
        return closed

    async def archive_conversation(self, conversation_id: int) -> Conversation:
        """Помещает чат в архив: очистка его больше не удалит."""
        archived = await self._repo.archive(conversation_id)
        if archived is None:
            raise NotFoundError("Чат не найден")

        await log_info(f"Чат {conversation_id} помещён в архив", type_msg=TypeMsg.INFO)
        await publish_event(
            self._event_bus,
            EventTypes.CONVERSATION_ARCHIVED,
            {"conversation_id": conversation_id},
        )
        return archived

    # =========================================================================
    # ОЧИСТКА
    # =========================================================================

    async def sweep_expired(self) -> tuple[int, int]:
        """
        Двухфазная очистка: сначала истёкшие чаты переводятся в expired,
        затем expired и не в архиве удаляются.
        Сбой между фазами оставляет чаты в восстановимом статусе expired.

        Returns:
            (переведено в expired, удалено)
        """
        now = now_local()

        expired = await self._repo.expire_due(now)
        for conversation in expired:
            if self._notifier is not None:
                await self._notifier.notify_conversation_expired(conversation.id)
            await publish_event(
                self._event_bus,
                EventTypes.CONVERSATION_EXPIRED,
                {"conversation_id": conversation.id, "match_id": conversation.match_id},
            )

        deleted = await self._repo.delete_expired(now)

        if expired or deleted:
            await log_info(
                f"Очистка чатов: истекло {len(expired)}, удалено {len(deleted)}",
                type_msg=TypeMsg.INFO,
            )
        return len(expired), len(deleted)

    # =========================================================================
    # ВСПОМОГАТЕЛЬНЫЕ
    # =========================================================================

    async def _get_for_participant(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = await self._repo.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Чат не найден")
        if not conversation.is_participant(user_id):
            raise ForbiddenError("Вы не участник этого чата")
        return conversation

    async def _expire(self, conversation: Conversation) -> None:
        """Ленивое истечение при обращении к чату."""
        if not await self._repo.mark_expired(conversation.id):
            return

        await log_info(f"Чат {conversation.id} истёк", type_msg=TypeMsg.INFO)
        if self._notifier is not None:
            await self._notifier.notify_conversation_expired(conversation.id)
        await publish_event(
            self._event_bus,
            EventTypes.CONVERSATION_EXPIRED,
            {"conversation_id": conversation.id, "match_id": conversation.match_id},
        )
