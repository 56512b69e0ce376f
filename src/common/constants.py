# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Роли пользователей."""
    USER = "user"
    CHARTER = "charter"
    ADMIN = "admin"


class LifecycleState(str, Enum):
    """Жизненный цикл записи (вместо nullable deleted_at)."""
    ACTIVE = "active"
    DELETED = "deleted"


class MatchStatus(str, Enum):
    """Статусы подбора (TravelMatch)."""
    SEARCHING = "searching"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ConversationStatus(str, Enum):
    """Статусы чата."""
    ACTIVE = "active"
    CLOSED = "closed"
    EXPIRED = "expired"


class TripStatus(str, Enum):
    """Статусы поездки."""
    PENDING = "pending"
    CHARTER_COMPLETED = "charter_completed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReportStatus(str, Enum):
    """Статусы жалобы."""
    PENDING = "pending"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class RealtimeEvent(str, Enum):
    """Имена событий, отправляемых клиентам по WebSocket."""
    NEW_MESSAGE = "new-message"
    NEW_CONVERSATION = "new-conversation"
    CONVERSATION_CLOSED = "conversation-closed"
    CONVERSATION_EXPIRED = "conversation-expired"
    USER_TYPING = "user-typing"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    MATCH_UPDATED = "match:updated"
    TRIP_UPDATED = "trip:updated"
    ERROR = "error"
    PONG = "pong"
