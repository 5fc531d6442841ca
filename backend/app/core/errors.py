"""Domain errors raised by the chat services.

They subclass :class:`fastapi.HTTPException` so a service can raise them from
anywhere in a request and FastAPI renders the matching status code.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ChatError(HTTPException):
    """Base class for chat domain failures."""

    default_status: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Chat request failed"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(
            status_code=status_code or self.default_status,
            detail=detail or self.default_detail,
        )


class ValidationError(ChatError):
    """Missing, malformed or oversized input; fixable by the caller."""

    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid chat request"


class FileTooLargeError(ValidationError):
    """Attachment exceeds the configured size limit."""

    default_status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "Attachment exceeds allowed size"


class ForbiddenError(ChatError):
    """The acting user may not access the room or target user."""

    default_status = status.HTTP_403_FORBIDDEN
    default_detail = "Not a room member"


class NotFoundError(ChatError):
    """Referenced room, message or user does not exist."""

    default_status = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"
