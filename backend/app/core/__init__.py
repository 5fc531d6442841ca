"""Core utilities for the chat backend."""

from .errors import ChatError, FileTooLargeError, ForbiddenError, NotFoundError, ValidationError
from .storage import StoredFile, build_file_url, store_upload

__all__ = [
    "ChatError",
    "ValidationError",
    "FileTooLargeError",
    "ForbiddenError",
    "NotFoundError",
    "StoredFile",
    "store_upload",
    "build_file_url",
]
