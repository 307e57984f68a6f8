"""Abstract base class for the coordination service client.

The locker never talks to ZooKeeper directly. It consumes this
capability set, which the production adapter implements on top of
``kazoo`` and which tests implement in memory.
"""

from __future__ import annotations

import abc
from typing import Callable

from ..models import SessionState, WatchEvent, ZkOptions

# Type alias: watcher(event) -> None, invoked on a driver thread
WatchCallback = Callable[[WatchEvent], None]

# Type alias: factory(options, watcher) -> connected client
ClientFactory = Callable[[ZkOptions, WatchCallback], "CoordinationClient"]


class CoordinationClient(abc.ABC):
    """A session with a hierarchical, watchable coordination service.

    Every client is bound to exactly one watcher callback at
    construction. One-shot watches armed through :meth:`exists` are
    delivered to that callback on a thread distinct from the caller's.

    Implementations raise :class:`~zookeeper_locker.exceptions.CoordinationError`
    (or one of its subclasses) for every failed call.
    """

    @abc.abstractmethod
    def exists(self, path: str, watch: bool = False) -> bool:
        """Return whether *path* exists.

        If *watch* is true a one-shot watch is armed on *path*; its
        notification is delivered to the client's watcher.
        """
        ...

    @abc.abstractmethod
    def create_persistent(self, path: str) -> str:
        """Create a durable node.

        Raises:
            NodeExistsError: If *path* already exists.
        """
        ...

    @abc.abstractmethod
    def create_ephemeral_sequential(self, path_prefix: str) -> str:
        """Create an ephemeral node named *path_prefix* plus a sequence suffix.

        Returns:
            The full path of the created node.
        """
        ...

    @abc.abstractmethod
    def delete(self, path: str) -> None:
        """Delete a node.

        Raises:
            NodeNotFoundError: If *path* does not exist.
        """
        ...

    @abc.abstractmethod
    def get_children(self, path: str) -> list[str]:
        """Return the unordered child names of *path*."""
        ...

    @property
    @abc.abstractmethod
    def state(self) -> SessionState:
        """Current state of the underlying session."""
        ...

    @abc.abstractmethod
    def close(self) -> None:
        """End the session. Ephemeral nodes of the session are removed."""
        ...
