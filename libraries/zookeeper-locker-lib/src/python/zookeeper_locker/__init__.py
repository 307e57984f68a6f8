"""ZooKeeper Locker — fair distributed locks on a coordination service.

Each lock is a queue of ephemeral sequential nodes under
``/locks/<lock name>``. Processes acquire the lock strictly in the
order of their sequence numbers, wait only for the node directly ahead
of them, and give up their place when their timeout elapses. Ephemeral
nodes guarantee that a crashed holder releases its lock when its
session expires.

Two transport modes are available:

* **Private client** — :class:`ZkLocker` opens a dedicated session per
  lock attempt and closes it on release.
* **Shared client** — :func:`configure` opens one session per process;
  :func:`get_locker` creates attempts that all run on it.

Quick Start::

    import zookeeper_locker
    from zookeeper_locker import ZkLocker, ZkOptions

    options = ZkOptions(connection_string="zk1:2181,zk2:2181")

    # Private client
    with ZkLocker(options, "orders", timeout=10.0).lock():
        pass  # critical section

    # Shared client
    zookeeper_locker.configure(options)
    with zookeeper_locker.get_locker("orders", timeout=5.0):
        pass  # critical section
"""

from .client.coordination_client import CoordinationClient
from .client.kazoo_client import KazooCoordinationClient
from .configs.locker_config import load_options
from .exceptions import (
    CoordinationError,
    InvalidOptionsError,
    LockStateError,
    LockTimeoutError,
    NodeExistsError,
    NodeNotFoundError,
    NotInitializedError,
    QueueNodeLostError,
    ZookeeperLockerError,
)
from .locking.base_locker import BaseLocker
from .locking.lock_handle import LockHandle
from .locking.shared_locker import SharedLocker
from .locking.zk_locker import ZkLocker
from .messaging.message_bus import MessageBus
from .models import (
    LockState,
    QueueNode,
    SessionState,
    WakeupMessage,
    WatchEvent,
    WatchEventType,
    ZkOptions,
)
from .session.notification_router import NotificationRouter
from .session.session_manager import (
    SessionManager,
    configure,
    default_session_manager,
    get_locker,
    reset,
)
from .session.session_module import LockerModule

__all__ = [
    # Shared-client entry points
    "configure",
    "default_session_manager",
    "get_locker",
    "reset",
    "SessionManager",
    "LockerModule",
    # Lockers
    "BaseLocker",
    "LockHandle",
    "SharedLocker",
    "ZkLocker",
    # Coordination client
    "CoordinationClient",
    "KazooCoordinationClient",
    # Messaging
    "MessageBus",
    "NotificationRouter",
    # Configuration
    "load_options",
    # Models
    "LockState",
    "QueueNode",
    "SessionState",
    "WakeupMessage",
    "WatchEvent",
    "WatchEventType",
    "ZkOptions",
    # Exceptions
    "CoordinationError",
    "InvalidOptionsError",
    "LockStateError",
    "LockTimeoutError",
    "NodeExistsError",
    "NodeNotFoundError",
    "NotInitializedError",
    "QueueNodeLostError",
    "ZookeeperLockerError",
]
