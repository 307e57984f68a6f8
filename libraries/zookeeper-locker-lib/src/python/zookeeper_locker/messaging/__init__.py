"""Messaging — in-process topic bus used to route watch wakeups."""

from .message_bus import MessageBus

__all__ = [
    "MessageBus",
]
