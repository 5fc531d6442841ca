"""Schemas for chat rooms, messages and the conversation list."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import MessageType, RoomType
from app.schemas.users import PublicUser


class MessageRead(BaseModel):
    """Serialized representation of a chat message."""

    id: int
    room_id: int
    sender_id: int
    sender: PublicUser | None = None
    message: str | None = None
    type: MessageType
    file_path: str | None = None
    file_url: str | None = None
    file_name: str | None = None
    content_type: str | None = None
    file_size: int | None = None
    created_at: datetime
    mentions: list[int] = Field(
        default_factory=list,
        description="Members mentioned with @name in the message text",
    )


class RoomRead(BaseModel):
    """Room as seen by one member."""

    id: int
    name: str | None = None
    display_name: str
    type: RoomType
    project_id: int | None = None
    created_by: int | None = None
    created_at: datetime
    last_message_at: datetime | None = None
    members: list[PublicUser] = Field(default_factory=list)
    unread_count: int = Field(0, ge=0)
    last_message: MessageRead | None = None


class ConversationRead(BaseModel):
    """Entry of the conversation list: a real room or a virtual direct room."""

    kind: Literal["room", "virtual"]
    room_id: int | None = None
    display_name: str
    type: RoomType
    unread_count: int = Field(0, ge=0)
    last_message: MessageRead | None = None
    partner: PublicUser | None = None


class RoomListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rooms: list[RoomRead] = Field(default_factory=list)
    recent_by_user: dict[int, list[MessageRead]] = Field(
        default_factory=dict,
        alias="recentByUser",
        description="Latest group-room messages per author, used for virtual room previews",
    )
    conversations: list[ConversationRead] = Field(default_factory=list)


class RoomMessagesResponse(BaseModel):
    room: RoomRead
    messages: list[MessageRead] = Field(default_factory=list)


class RoomCreate(BaseModel):
    """Payload for creating a room; direct rooms are reused when they exist."""

    type: RoomType
    name: str | None = None
    user_ids: list[int] = Field(..., min_length=1)
    project_id: int | None = None

    @model_validator(mode="after")
    def check_direct_target(self) -> "RoomCreate":
        if self.type == RoomType.DIRECT and len(set(self.user_ids)) != 1:
            raise ValueError("A direct room needs exactly one other user")
        return self


class MarkReadResponse(BaseModel):
    success: bool = True
    marked: int = Field(0, ge=0)


class SuccessResponse(BaseModel):
    success: bool = True
