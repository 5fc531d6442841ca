"""Database models package."""

from .base import Base
from .chat import (
    ChatMessage,
    ChatMessageRead,
    ChatRoom,
    ChatRoomMember,
    User,
    UserPresence,
    direct_pair_key,
    utcnow,
)
from .enums import MessageType, RoomType, UserRole

__all__ = [
    "Base",
    "User",
    "ChatRoom",
    "ChatRoomMember",
    "ChatMessage",
    "ChatMessageRead",
    "UserPresence",
    "MessageType",
    "RoomType",
    "UserRole",
    "direct_pair_key",
    "utcnow",
]
