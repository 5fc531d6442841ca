"""Monitoring helpers and metric registry for the chat backend."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
