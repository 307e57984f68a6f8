"""Session manager — the process-wide shared coordination session.

Opening a ZooKeeper session costs a network round trip and a session
negotiation, so shared-client lockers all run on one session owned by
a :class:`SessionManager`. The manager creates the session on
:meth:`~SessionManager.configure`, checks its liveness every time a
locker asks for it and transparently replaces a session that is no
longer connected.

Usage::

    import zookeeper_locker

    zookeeper_locker.configure(ZkOptions(connection_string="zk1:2181"))
    with zookeeper_locker.get_locker("orders", timeout=5.0).lock():
        ...
"""

from __future__ import annotations

import logging
import threading

from prometheus_client import Counter

from ..client.coordination_client import ClientFactory, CoordinationClient
from ..client.kazoo_client import KazooCoordinationClient
from ..exceptions import CoordinationError, NotInitializedError
from ..locking.lock_queue import ensure_path
from ..locking.shared_locker import SharedLocker
from ..messaging.message_bus import MessageBus
from ..models import DEFAULT_LOCK_NAME, WakeupMessage, ZkOptions
from .notification_router import NotificationRouter

logger = logging.getLogger(__name__)

SESSION_RECONNECT_COUNTER = Counter("zkl_session_reconnect_total", "Total number of shared session re-creations")


class SessionManager:
    """Owner of exactly one live shared session.

    Parameters:
        client_factory: Builds sessions; defaults to
            :class:`KazooCoordinationClient`.
        bus: Bus used to route wakeups; defaults to the process-wide
            bus for :class:`WakeupMessage`.
    """

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        bus: MessageBus[WakeupMessage] | None = None,
    ) -> None:
        self._client_factory = client_factory or KazooCoordinationClient
        self._bus = bus if bus is not None else MessageBus.shared(WakeupMessage)
        self._router = NotificationRouter(self.current_client, self._bus)
        self._lock = threading.RLock()
        self._options: ZkOptions | None = None
        self._client: CoordinationClient | None = None

    # ── Properties ────────────────────────────────────────────────

    @property
    def options(self) -> ZkOptions:
        options = self._options
        if options is None:
            raise NotInitializedError()
        return options

    @property
    def bus(self) -> MessageBus[WakeupMessage]:
        return self._bus

    @property
    def router(self) -> NotificationRouter:
        return self._router

    @property
    def is_configured(self) -> bool:
        with self._lock:
            return self._client is not None

    # ── Lifecycle ─────────────────────────────────────────────────

    def configure(self, options: ZkOptions) -> None:
        """Open the shared session and ensure the lock root exists.

        Ignored while a session exists; call :meth:`reset` first to
        connect with different options.
        """
        with self._lock:
            if self._client is not None:
                logger.debug("Shared session already configured; ignoring configure()")
                return
            self._client = self._connect(options)
            self._options = options
        logger.info("Shared session configured for %s", options.connection_string)

    def reset(self) -> None:
        """Close the shared session and forget the options."""
        with self._lock:
            client, self._client = self._client, None
            self._options = None
        if client is None:
            return
        self._close_quietly(client)
        logger.info("Shared session reset")

    def get_client(self) -> CoordinationClient:
        """Return a connected shared session, reconnecting if needed.

        Raises:
            NotInitializedError: If :meth:`configure` was never called.
            CoordinationError: If reconnecting fails.
        """
        with self._lock:
            client = self._client
            if client is None or self._options is None:
                raise NotInitializedError()
            state = client.state
            if state.is_usable:
                return client
            logger.info("Shared session is %s; reconnecting", state.value)
            self._client = self._connect(self._options)
            SESSION_RECONNECT_COUNTER.inc()
            fresh = self._client
        self._close_quietly(client)
        return fresh

    def current_client(self) -> CoordinationClient | None:
        """Return the shared session if it is usable, without reconnecting.

        Used on driver threads, where replacing the session is unsafe.
        """
        with self._lock:
            client = self._client
        if client is None or not client.state.is_usable:
            return None
        return client

    def get_locker(
        self,
        lock_name: str = DEFAULT_LOCK_NAME,
        timeout: float = 5.0,
    ) -> SharedLocker:
        """Create a lock attempt on the shared session.

        Raises:
            NotInitializedError: If :meth:`configure` was never called.
        """
        self.get_client()
        return SharedLocker(self, lock_name=lock_name, timeout=timeout, bus=self._bus)

    # ── Private ───────────────────────────────────────────────────

    def _connect(self, options: ZkOptions) -> CoordinationClient:
        client = self._client_factory(options, self._router.process)
        try:
            ensure_path(client, options.root_path)
        except CoordinationError:
            self._close_quietly(client)
            raise
        return client

    @staticmethod
    def _close_quietly(client: CoordinationClient) -> None:
        try:
            client.close()
        except CoordinationError:
            logger.debug("Ignoring failure while closing a stale session", exc_info=True)


# ── Process-wide default ──────────────────────────────────────────

_default_manager: SessionManager | None = None
_default_manager_lock = threading.Lock()


def default_session_manager() -> SessionManager:
    """Return the process-wide :class:`SessionManager`, creating it once."""
    global _default_manager
    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = SessionManager()
        return _default_manager


def configure(options: ZkOptions) -> None:
    """Configure the process-wide shared session."""
    default_session_manager().configure(options)


def get_locker(lock_name: str = DEFAULT_LOCK_NAME, timeout: float = 5.0) -> SharedLocker:
    """Create a lock attempt on the process-wide shared session."""
    return default_session_manager().get_locker(lock_name, timeout)


def reset() -> None:
    """Close the process-wide shared session."""
    default_session_manager().reset()
