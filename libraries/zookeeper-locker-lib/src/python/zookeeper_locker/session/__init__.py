# Session subpackage

from .notification_router import NotificationRouter
from .session_manager import (
    SessionManager,
    configure,
    default_session_manager,
    get_locker,
    reset,
)
from .session_module import LockerModule

__all__ = [
    "LockerModule",
    "NotificationRouter",
    "SessionManager",
    "configure",
    "default_session_manager",
    "get_locker",
    "reset",
]
