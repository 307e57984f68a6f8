"""Coordination client backed by the ``kazoo`` ZooKeeper driver."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NoNodeError
from kazoo.exceptions import NodeExistsError as KazooNodeExistsError
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.protocol.states import KeeperState, WatchedEvent

from ..exceptions import CoordinationError, NodeExistsError, NodeNotFoundError
from ..models import SessionState, WatchEvent, WatchEventType, ZkOptions
from .coordination_client import CoordinationClient, WatchCallback

logger = logging.getLogger(__name__)

_KEEPER_STATES = {
    KeeperState.CONNECTED: SessionState.CONNECTED,
    KeeperState.CONNECTED_RO: SessionState.CONNECTED_READ_ONLY,
    KeeperState.CONNECTING: SessionState.CONNECTING,
    KeeperState.EXPIRED_SESSION: SessionState.EXPIRED,
    KeeperState.AUTH_FAILED: SessionState.CLOSED,
    KeeperState.CLOSED: SessionState.CLOSED,
}


@contextmanager
def _translate_errors(path: str | None) -> Iterator[None]:
    """Map kazoo failures onto the locker's exception hierarchy."""
    try:
        yield
    except KazooNodeExistsError as e:
        raise NodeExistsError(path or "") from e
    except NoNodeError as e:
        raise NodeNotFoundError(path or "") from e
    except (KazooException, KazooTimeoutError) as e:
        raise CoordinationError(path, reason=f"{type(e).__name__}: {e}") from e


class KazooCoordinationClient(CoordinationClient):
    """Connected ZooKeeper session.

    The session is started in the constructor, so a successfully
    constructed client is ready for use.

    Parameters:
        options: Connection options.
        watcher: Receives every watch notification armed through
            :meth:`exists`, on kazoo's event thread.
    """

    def __init__(self, options: ZkOptions, watcher: WatchCallback) -> None:
        self._watcher = watcher
        client_id = None
        if options.session_id is not None:
            client_id = (options.session_id, options.session_password)
        self._client = KazooClient(
            hosts=options.connection_string,
            timeout=options.session_timeout,
            client_id=client_id,
            read_only=options.can_be_read_only,
        )
        try:
            with _translate_errors(None):
                self._client.start(timeout=options.connect_timeout)
        except CoordinationError:
            self._client.close()
            raise
        logger.info(
            "Connected to %s (session_id=%#x)",
            options.connection_string,
            self._client.client_id[0],
        )

    @property
    def session_id(self) -> int:
        return self._client.client_id[0]

    def exists(self, path: str, watch: bool = False) -> bool:
        with _translate_errors(path):
            stat = self._client.exists(path, watch=self._on_watched_event if watch else None)
        return stat is not None

    def create_persistent(self, path: str) -> str:
        with _translate_errors(path):
            return self._client.create(path)

    def create_ephemeral_sequential(self, path_prefix: str) -> str:
        with _translate_errors(path_prefix):
            return self._client.create(path_prefix, ephemeral=True, sequence=True)

    def delete(self, path: str) -> None:
        with _translate_errors(path):
            self._client.delete(path)

    def get_children(self, path: str) -> list[str]:
        with _translate_errors(path):
            return list(self._client.get_children(path))

    @property
    def state(self) -> SessionState:
        return _KEEPER_STATES.get(self._client.client_state, SessionState.CONNECTING)

    def close(self) -> None:
        with _translate_errors(None):
            try:
                self._client.stop()
            finally:
                self._client.close()

    def _on_watched_event(self, event: WatchedEvent) -> None:
        try:
            self._watcher(WatchEvent(path=event.path, type=WatchEventType(event.type)))
        except Exception:
            logger.exception("Watcher failed for %s event on %s", event.type, event.path)
