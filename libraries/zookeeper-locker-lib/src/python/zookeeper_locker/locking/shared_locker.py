"""Shared-client locker — all attempts share the session manager's session.

Deletion notifications of the shared session go to the
:class:`~zookeeper_locker.session.notification_router.NotificationRouter`,
which publishes a wakeup to the topic named after the node now at the
head of the queue. Every attempt subscribes to the topic of its own
node path before it arms any watch, so a deletion observed after the
watch is armed cannot be missed.

The router only wakes queue heads. A waiter whose predecessor left
from the middle of the queue is not woken by it, so waits are cut into
slices of ``recheck_interval`` seconds after which the rank is checked
again.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..client.coordination_client import CoordinationClient
from ..messaging.message_bus import MessageBus
from ..models import DEFAULT_LOCK_NAME, QueueNode, WakeupMessage
from .base_locker import BaseLocker

if TYPE_CHECKING:
    from ..session.session_manager import SessionManager

logger = logging.getLogger(__name__)


class SharedLocker(BaseLocker):
    """Lock attempt running on the process-wide shared session.

    Obtain instances through :meth:`SessionManager.get_locker` or
    :func:`zookeeper_locker.get_locker`. The shared session is never
    closed by a locker.
    """

    mode = "shared"

    def __init__(
        self,
        session_manager: SessionManager,
        lock_name: str = DEFAULT_LOCK_NAME,
        timeout: float = 5.0,
        bus: MessageBus[WakeupMessage] | None = None,
    ) -> None:
        super().__init__(lock_name, timeout)
        self._manager = session_manager
        self._bus = bus if bus is not None else session_manager.bus

    @property
    def _root_path(self) -> str:
        return self._manager.options.root_path

    def _open_client(self) -> CoordinationClient:
        return self._manager.get_client()

    def _release_client(self) -> CoordinationClient:
        return self._manager.get_client()

    def _on_node_created(self, node: QueueNode) -> None:
        self._bus.subscribe(node.path, self._on_wakeup)

    def _release_resources(self, node: QueueNode | None) -> None:
        if node is not None:
            self._bus.unsubscribe(node.path)

    def _wait_slice(self, remaining: float) -> float:
        return min(remaining, self._manager.options.recheck_interval)

    def _on_wakeup(self, message: WakeupMessage) -> None:
        logger.debug("Lock '%s' woken by deletion of %s", self._lock_name, message.deleted_path)
        self._signal()
