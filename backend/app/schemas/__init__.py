"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, Token
from .chat import (
    ConversationRead,
    MarkReadResponse,
    MessageRead,
    RoomCreate,
    RoomListResponse,
    RoomMessagesResponse,
    RoomRead,
    SuccessResponse,
)
from .users import OnlineStatusUpdate, OnlineUser, PublicUser

__all__ = [
    "LoginRequest",
    "Token",
    "PublicUser",
    "OnlineUser",
    "OnlineStatusUpdate",
    "MessageRead",
    "RoomRead",
    "ConversationRead",
    "RoomListResponse",
    "RoomMessagesResponse",
    "RoomCreate",
    "MarkReadResponse",
    "SuccessResponse",
]
