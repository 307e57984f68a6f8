"""Notification router — the single watcher of the shared session.

Every watch armed on the shared session reports to :meth:`process`.
When a queue node is deleted the router lists what remains of that
queue and publishes a wakeup to the topic of the new head, i.e. to the
waiter that may now hold the lock. No other topic is notified.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..client.coordination_client import CoordinationClient
from ..exceptions import ZookeeperLockerError
from ..locking.lock_queue import LockQueue
from ..messaging.message_bus import MessageBus
from ..models import WakeupMessage, WatchEvent, WatchEventType

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Routes deletion notifications to the waiter at the head of a queue.

    Parameters:
        client_provider: Returns the shared session, or None while it is
            not usable. Must not reconnect.
        bus: Bus on which waiters subscribe by their node path.
    """

    def __init__(
        self,
        client_provider: Callable[[], CoordinationClient | None],
        bus: MessageBus[WakeupMessage],
    ) -> None:
        self._client_provider = client_provider
        self._bus = bus

    def process(self, event: WatchEvent) -> None:
        """Handle one watch notification. Runs on a driver thread."""
        if event.type is not WatchEventType.DELETED:
            return

        queue_path = event.path.rsplit("/", 1)[0]
        if not queue_path:
            return
        try:
            client = self._client_provider()
            if client is None:
                logger.debug("Shared session not usable; deletion of %s not routed", event.path)
                return
            head = LockQueue(client, queue_path).head()
        except ZookeeperLockerError:
            logger.warning(
                "Could not list queue %s after deletion of %s",
                queue_path,
                event.path,
                exc_info=True,
            )
            return

        if head is None:
            return
        delivered = self._bus.publish(head, WakeupMessage(deleted_path=event.path))
        logger.debug(
            "Deletion of %s routed to %s (delivered=%s)",
            event.path,
            head,
            delivered,
        )
