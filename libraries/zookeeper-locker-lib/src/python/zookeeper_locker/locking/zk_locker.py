"""Private-client locker — one dedicated session per lock attempt.

The locker is its own watcher: deletion notifications for the
predecessor it watches arrive directly on its session, so no shared
state is involved. The session is opened by :meth:`ZkLocker.lock` and
closed when the attempt ends, which also removes any ephemeral node
left behind.

Usage::

    locker = ZkLocker(ZkOptions(connection_string="zk1:2181"), "orders")
    with locker.lock():
        ...
"""

from __future__ import annotations

import logging

from ..client.coordination_client import ClientFactory, CoordinationClient
from ..client.kazoo_client import KazooCoordinationClient
from ..exceptions import CoordinationError, LockStateError
from ..models import DEFAULT_LOCK_NAME, QueueNode, WatchEvent, WatchEventType, ZkOptions
from .base_locker import BaseLocker

logger = logging.getLogger(__name__)


class ZkLocker(BaseLocker):
    """Lock attempt that owns its coordination session.

    Parameters:
        options: Connection options for the dedicated session.
        lock_name: Name of the lock (default ``defaultLock``).
        timeout: Seconds to wait for the lock (default 30s).
        client_factory: Builds the session; defaults to
            :class:`KazooCoordinationClient`.
    """

    mode = "private"

    def __init__(
        self,
        options: ZkOptions,
        lock_name: str = DEFAULT_LOCK_NAME,
        timeout: float = 30.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(lock_name, timeout)
        self._options = options
        self._client_factory = client_factory or KazooCoordinationClient
        self._client: CoordinationClient | None = None

    @property
    def _root_path(self) -> str:
        return self._options.root_path

    def _open_client(self) -> CoordinationClient:
        self._client = self._client_factory(self._options, self._on_watch_event)
        return self._client

    def _release_client(self) -> CoordinationClient:
        if self._client is None:
            raise LockStateError(self._lock_name, self.state.value, "release")
        return self._client

    def _release_resources(self, node: QueueNode | None) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
        except CoordinationError:
            logger.warning("Failed to close session of lock '%s'", self._lock_name, exc_info=True)

    def _on_watch_event(self, event: WatchEvent) -> None:
        if event.type is WatchEventType.DELETED:
            logger.debug("Lock '%s' notified of deletion of %s", self._lock_name, event.path)
            self._signal()
