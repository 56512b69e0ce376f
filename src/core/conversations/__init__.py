# src/core/conversations/__init__.py
"""
Домен чатов.
Временные чаты сторон принятого подбора.
"""

from src.core.conversations.models import Conversation, ConversationSummary, Message
from src.core.conversations.service import ConversationService

__all__ = [
    "Conversation",
    "ConversationSummary",
    "Message",
    "ConversationService",
]
