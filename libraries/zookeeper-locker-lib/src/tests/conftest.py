"""Shared fixtures: an in-memory coordination store standing in for ZooKeeper."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable

import pytest

from zookeeper_locker.client.coordination_client import CoordinationClient, WatchCallback
from zookeeper_locker.exceptions import CoordinationError, NodeExistsError, NodeNotFoundError
from zookeeper_locker.locking.base_locker import BaseLocker
from zookeeper_locker.locking.zk_locker import ZkLocker
from zookeeper_locker.messaging.message_bus import MessageBus
from zookeeper_locker.models import SessionState, WakeupMessage, WatchEvent, WatchEventType, ZkOptions
from zookeeper_locker.session.session_manager import SessionManager

logger = logging.getLogger(__name__)


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] or "/"


class FakeZooKeeper:
    """Node tree with sequential naming, ephemeral owners and one-shot watches."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[str, FakeCoordinationClient | None] = {"/": None}
        self._sequences: dict[str, int] = {}
        self._watches: dict[str, set[FakeCoordinationClient]] = {}
        self.callback_errors: list[BaseException] = []

    def exists(self, path: str, watcher: FakeCoordinationClient | None) -> bool:
        with self._lock:
            if watcher is not None:
                self._watches.setdefault(path, set()).add(watcher)
            return path in self._nodes

    def create(self, path: str, owner: FakeCoordinationClient | None, sequential: bool) -> str:
        with self._lock:
            parent = _parent(path)
            if parent not in self._nodes:
                raise NodeNotFoundError(parent)
            if sequential:
                seq = self._sequences.get(parent, 0)
                self._sequences[parent] = seq + 1
                path = f"{path}{seq:010d}"
            if path in self._nodes:
                raise NodeExistsError(path)
            self._nodes[path] = owner
            self._fire(path, WatchEventType.CREATED)
            return path

    def delete(self, path: str) -> None:
        with self._lock:
            if path not in self._nodes:
                raise NodeNotFoundError(path)
            if self.children(path):
                raise CoordinationError(path, reason="Node not empty")
            del self._nodes[path]
            self._fire(path, WatchEventType.DELETED)

    def children(self, path: str) -> list[str]:
        with self._lock:
            if path not in self._nodes:
                raise NodeNotFoundError(path)
            return [p.rsplit("/", 1)[-1] for p in self._nodes if p != "/" and _parent(p) == path]

    def has_node(self, path: str) -> bool:
        with self._lock:
            return path in self._nodes

    def end_session(self, client: FakeCoordinationClient) -> None:
        """Drop the session's ephemeral nodes and pending watches."""
        with self._lock:
            for watchers in self._watches.values():
                watchers.discard(client)
            owned = [p for p, owner in self._nodes.items() if owner is client]
            for path in owned:
                del self._nodes[path]
                self._fire(path, WatchEventType.DELETED)

    def _fire(self, path: str, event_type: WatchEventType) -> None:
        for client in self._watches.pop(path, set()):
            client.deliver(WatchEvent(path=path, type=event_type))


class FakeCoordinationClient(CoordinationClient):
    """Session on a :class:`FakeZooKeeper`; watches fire on its own thread."""

    def __init__(self, store: FakeZooKeeper, watcher: WatchCallback) -> None:
        self._store = store
        self._watcher = watcher
        self._state = SessionState.CONNECTED
        self._events: queue.Queue[WatchEvent | None] = queue.Queue()
        self._thread = threading.Thread(target=self._dispatch_loop, name="fake-zk-events", daemon=True)
        self._thread.start()

    def exists(self, path: str, watch: bool = False) -> bool:
        self._check_usable(path)
        return self._store.exists(path, self if watch else None)

    def create_persistent(self, path: str) -> str:
        self._check_usable(path)
        return self._store.create(path, owner=None, sequential=False)

    def create_ephemeral_sequential(self, path_prefix: str) -> str:
        self._check_usable(path_prefix)
        return self._store.create(path_prefix, owner=self, sequential=True)

    def delete(self, path: str) -> None:
        self._check_usable(path)
        self._store.delete(path)

    def get_children(self, path: str) -> list[str]:
        self._check_usable(path)
        return self._store.children(path)

    @property
    def state(self) -> SessionState:
        return self._state

    def set_state(self, state: SessionState) -> None:
        self._state = state

    def expire(self) -> None:
        """Simulate session expiry: ephemeral nodes vanish, session unusable."""
        self._state = SessionState.EXPIRED
        self._store.end_session(self)

    def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._store.end_session(self)
        self._events.put(None)

    def deliver(self, event: WatchEvent) -> None:
        self._events.put(event)

    def _check_usable(self, path: str) -> None:
        if not self._state.is_usable:
            raise CoordinationError(path, reason=f"Session {self._state.value}")

    def _dispatch_loop(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                return
            try:
                self._watcher(event)
            except Exception as e:
                logger.exception("Watcher failed")
                self._store.callback_errors.append(e)


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def zk_store() -> FakeZooKeeper:
    return FakeZooKeeper()


@pytest.fixture
def client_factory(zk_store):
    clients: list[FakeCoordinationClient] = []

    def factory(options: ZkOptions, watcher: WatchCallback) -> FakeCoordinationClient:
        client = FakeCoordinationClient(zk_store, watcher)
        clients.append(client)
        return client

    factory.clients = clients
    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def options() -> ZkOptions:
    return ZkOptions(connection_string="fake-zk:2181", recheck_interval=0.05)


@pytest.fixture
def bus():
    bus = MessageBus[WakeupMessage](name="test-bus", sweep_interval=0)
    yield bus
    bus.close()


@pytest.fixture
def session_manager(client_factory, bus, options):
    manager = SessionManager(client_factory=client_factory, bus=bus)
    manager.configure(options)
    yield manager
    manager.reset()


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture(params=["private", "shared"])
def make_locker(request, client_factory, options, session_manager):
    """Build lockers in either transport mode against the same store."""

    def factory(lock_name: str = "orders", timeout: float = 5.0) -> BaseLocker:
        if request.param == "private":
            return ZkLocker(options, lock_name, timeout, client_factory=client_factory)
        return session_manager.get_locker(lock_name, timeout)

    factory.mode = request.param
    return factory
