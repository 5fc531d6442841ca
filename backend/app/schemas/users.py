"""Schemas describing chat participants."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import UserRole


class PublicUser(BaseModel):
    """Minimal public-facing user information."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole


class OnlineUser(BaseModel):
    """User currently reported online by the presence ledger."""

    id: int
    name: str
    email: str
    last_seen_at: datetime | None = None


class OnlineStatusUpdate(BaseModel):
    """Heartbeat payload."""

    is_online: bool
