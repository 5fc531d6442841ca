"""Polling driver keeping a local view of chat rooms in sync with the server."""

from .client import ChatApiClient, ChatApiError  # noqa: F401
from .loop import SyncConfig, SyncLoop  # noqa: F401
from .state import ConversationState  # noqa: F401

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "ConversationState",
    "SyncConfig",
    "SyncLoop",
]
