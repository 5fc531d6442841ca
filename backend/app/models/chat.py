from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import MessageType, RoomType, UserRole


def utcnow() -> datetime:
    """Timestamp factory with microsecond precision on every backend."""

    return datetime.now(timezone.utc)


def direct_pair_key(user_id: int, other_id: int) -> str:
    """Order-independent key identifying the direct room of two users."""

    low, high = (user_id, other_id) if user_id < other_id else (other_id, user_id)
    return f"{low}:{high}"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """Application user, owned by the identity service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.CONTRIBUTOR,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    memberships: Mapped[list["ChatRoomMember"]] = relationship(back_populates="user")
    presence: Mapped["UserPresence | None"] = relationship(back_populates="user")


class ChatRoom(Base):
    """Direct or group conversation."""

    __tablename__ = "chat_rooms"
    __table_args__ = (
        UniqueConstraint("direct_key", name="uq_chat_room_direct_pair"),
        Index("ix_chat_rooms_last_message_at", "last_message_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    type: Mapped[RoomType] = mapped_column(
        SAEnum(RoomType, name="chat_room_type", values_callable=_enum_values),
        default=RoomType.DIRECT,
        nullable=False,
    )
    # Opaque reference into the project-management side; not owned here.
    project_id: Mapped[int | None] = mapped_column(Integer)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    # "<low_id>:<high_id>" for direct rooms, NULL for groups.
    direct_key: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    creator: Mapped[User | None] = relationship(foreign_keys=[created_by])
    members: Mapped[list["ChatRoomMember"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="ChatRoomMember.id",
    )
    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    @property
    def member_ids(self) -> set[int]:
        return {member.user_id for member in self.members}


class ChatRoomMember(Base):
    """Membership link between a room and a user."""

    __tablename__ = "chat_room_members"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_chat_room_member"),
        Index("ix_chat_room_members_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    room_id: Mapped[int] = mapped_column(
        ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    room: Mapped[ChatRoom] = relationship(back_populates="members")
    user: Mapped[User] = relationship(back_populates="memberships")


class ChatMessage(Base):
    """Immutable message posted to a room."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_room_created", "room_id", "created_at", "id"),
        Index("ix_chat_messages_sender", "sender_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    room_id: Mapped[int] = mapped_column(
        ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    body: Mapped[str | None] = mapped_column(Text)
    type: Mapped[MessageType] = mapped_column(
        SAEnum(MessageType, name="chat_message_type", values_callable=_enum_values),
        default=MessageType.TEXT,
        nullable=False,
    )
    file_path: Mapped[str | None] = mapped_column(String(512))
    file_name: Mapped[str | None] = mapped_column(String(255))
    content_type: Mapped[str | None] = mapped_column(String(128))
    file_size: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    room: Mapped[ChatRoom] = relationship(back_populates="messages")
    sender: Mapped[User] = relationship()
    reads: Mapped[list["ChatMessageRead"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )

    @property
    def file_url(self) -> str | None:
        from app.core.storage import build_file_url

        if not self.file_path:
            return None
        return build_file_url(self.file_path)


class ChatMessageRead(Base):
    """Read receipt: one row per (message, reader)."""

    __tablename__ = "chat_message_reads"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_chat_message_read"),
        Index("ix_chat_message_reads_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    message_id: Mapped[int] = mapped_column(
        ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    message: Mapped[ChatMessage] = relationship(back_populates="reads")


class UserPresence(Base):
    """Heartbeat ledger for online status."""

    __tablename__ = "chat_user_presence"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    is_online: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    user: Mapped[User] = relationship(back_populates="presence")
