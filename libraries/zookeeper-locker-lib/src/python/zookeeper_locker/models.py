"""Data models for the ZooKeeper-backed distributed locker.

All models use Pydantic for validation.
"""

from __future__ import annotations

import enum
import re

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ROOT_PATH = "/locks"
DEFAULT_LOCK_NAME = "defaultLock"
QUEUE_NODE_PREFIX = "node"

_SEQUENCE_SUFFIX = re.compile(r"(\d+)$")


def sequence_of(node_name: str) -> int | None:
    """Return the numeric sequence suffix of a queue node name.

    ``node0000000042`` yields ``42``. Names without a numeric suffix
    are not queue tickets and yield ``None``.
    """
    match = _SEQUENCE_SUFFIX.search(node_name)
    if match is None:
        return None
    return int(match.group(1))


# ── Enums ─────────────────────────────────────────────────────────


class LockState(str, enum.Enum):
    """Lifecycle state of a single locker instance."""

    IDLE = "idle"
    NODE_CREATED = "node_created"
    WAITING = "waiting"
    ACQUIRED = "acquired"
    RELEASED = "released"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LockState.RELEASED, LockState.TIMED_OUT, LockState.FAILED)


class SessionState(str, enum.Enum):
    """Connection state of a coordination service session."""

    CONNECTED = "connected"
    CONNECTED_READ_ONLY = "connected_read_only"
    CONNECTING = "connecting"
    EXPIRED = "expired"
    CLOSED = "closed"

    @property
    def is_usable(self) -> bool:
        """True if requests can be issued on this session."""
        return self in (SessionState.CONNECTED, SessionState.CONNECTED_READ_ONLY)


class WatchEventType(str, enum.Enum):
    """Kind of change reported by a watch notification."""

    CREATED = "CREATED"
    DELETED = "DELETED"
    CHANGED = "CHANGED"
    CHILD = "CHILD"
    NONE = "NONE"


# ── Options ───────────────────────────────────────────────────────


class ZkOptions(BaseModel):
    """Connection options for a coordination service session."""

    connection_string: str = Field(..., min_length=1)
    """Comma separated ``host:port`` list, optionally with a chroot."""

    session_timeout: float = Field(default=30.0, gt=0)
    """Requested session timeout in seconds."""

    connect_timeout: float = Field(default=15.0, gt=0)
    """Seconds to wait for the initial connection."""

    session_id: int | None = None
    """Existing session to re-attach to. Requires ``session_password``."""

    session_password: bytes | None = None
    """Password of the existing session in ``session_id``."""

    can_be_read_only: bool = False
    """Allow connecting to a read-only server."""

    root_path: str = DEFAULT_ROOT_PATH
    """Container node under which every lock queue lives."""

    recheck_interval: float = Field(default=1.0, gt=0)
    """Upper bound in seconds between rank re-validations of shared-client waiters."""

    @field_validator("root_path")
    @classmethod
    def _normalize_root_path(cls, value: str) -> str:
        value = value.rstrip("/")
        if not value.startswith("/") or value == "":
            raise ValueError("root_path must be an absolute path other than '/'")
        return value

    @model_validator(mode="after")
    def _check_session_credentials(self) -> ZkOptions:
        if (self.session_id is None) != (self.session_password is None):
            raise ValueError("session_id and session_password must be set together")
        return self


# ── Queue Models ──────────────────────────────────────────────────


class QueueNode(BaseModel):
    """An ephemeral sequential child node acting as a fairness ticket."""

    path: str
    """Full path of the node, e.g. ``/locks/orders/node0000000007``."""

    lock_name: str
    """Name of the lock whose queue this node belongs to."""

    @property
    def name(self) -> str:
        """Last path segment of the node."""
        return self.path.rsplit("/", 1)[-1]

    @property
    def parent_path(self) -> str:
        return self.path.rsplit("/", 1)[0]

    @property
    def sequence(self) -> int | None:
        return sequence_of(self.name)


# ── Notification Models ───────────────────────────────────────────


class WatchEvent(BaseModel):
    """A watch notification delivered by the coordination client."""

    path: str
    """The node the notification is about."""

    type: WatchEventType
    """The kind of change."""


class WakeupMessage(BaseModel):
    """Payload published to the waiter that has become head of a queue."""

    deleted_path: str
    """The node whose deletion triggered the wakeup."""
