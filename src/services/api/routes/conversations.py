# src/services/api/routes/conversations.py
"""
Чаты: список, сообщения, закрытие.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.core.conversations.models import SendMessageRequest
from src.core.conversations.service import ConversationService
from src.services.api.auth import CurrentUser, get_current_user
from src.services.api.dependencies import get_conversation_service
from src.shared.models.common import ApiResponse

router = APIRouter(prefix="/api/v1/conversations", tags=["Conversations"])


@router.get("")
async def list_conversations(
    user: CurrentUser = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ApiResponse:
    """Активные чаты пользователя с последним сообщением и непрочитанными."""
    return ApiResponse.ok(await service.get_user_conversations(user.user_id))


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.get_conversation(conversation_id, user.user_id))


@router.get("/{conversation_id}/messages")
async def get_messages(
    conversation_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ApiResponse:
    """История сообщений; входящие помечаются прочитанными."""
    return ApiResponse.ok(await service.get_messages(conversation_id, user.user_id))


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: int,
    body: SendMessageRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ApiResponse:
    message = await service.send_message(conversation_id, user.user_id, body.content)
    return ApiResponse.ok(message)


@router.post("/{conversation_id}/close")
async def close_conversation(
    conversation_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ApiResponse:
    conversation = await service.close_conversation(conversation_id, user.user_id)
    return ApiResponse.ok(conversation, message="Чат закрыт")
