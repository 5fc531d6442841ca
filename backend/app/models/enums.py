from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Organizational role assigned by the identity service."""

    ADMIN = "admin"
    MANAGER = "manager"
    CONTRIBUTOR = "contributor"
    CLIENT = "client"


class RoomType(str, Enum):
    """Kinds of chat rooms."""

    DIRECT = "direct"
    GROUP = "group"


class MessageType(str, Enum):
    """Payload kinds a chat message can carry."""

    TEXT = "text"
    FILE = "file"
    IMAGE = "image"
