"""Tests for the kazoo adapter, with ``KazooClient`` replaced by a recorder."""

import pytest
from kazoo.exceptions import ConnectionLoss, NoNodeError, WriterNotClosedException
from kazoo.exceptions import NodeExistsError as KazooNodeExistsError
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.protocol.states import EventType, KeeperState, WatchedEvent

from zookeeper_locker.client import kazoo_client
from zookeeper_locker.client.kazoo_client import KazooCoordinationClient
from zookeeper_locker.exceptions import CoordinationError, NodeExistsError, NodeNotFoundError
from zookeeper_locker.models import SessionState, WatchEventType, ZkOptions


class RecordingKazooClient:
    instances = []
    start_error = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.calls = []
        self.client_id = (0x1234, b"password")
        self.client_state = KeeperState.CONNECTED
        self.watchers = {}
        self.raise_on_call = None
        self.stop_error = None
        RecordingKazooClient.instances.append(self)

    def start(self, timeout=15):
        self.calls.append(("start", timeout))
        if RecordingKazooClient.start_error is not None:
            raise RecordingKazooClient.start_error

    def stop(self):
        self.calls.append(("stop",))
        if self.stop_error is not None:
            raise self.stop_error

    def close(self):
        self.calls.append(("close",))

    def _record(self, *call):
        self.calls.append(call)
        if self.raise_on_call is not None:
            raise self.raise_on_call

    def exists(self, path, watch=None):
        self._record("exists", path)
        self.watchers[path] = watch
        return object()

    def create(self, path, ephemeral=False, sequence=False):
        self._record("create", path, ephemeral, sequence)
        return f"{path}0000000001" if sequence else path

    def delete(self, path):
        self._record("delete", path)

    def get_children(self, path):
        self._record("get_children", path)
        return ("node0000000001",)


@pytest.fixture
def recording_kazoo(monkeypatch):
    RecordingKazooClient.instances = []
    RecordingKazooClient.start_error = None
    monkeypatch.setattr(kazoo_client, "KazooClient", RecordingKazooClient)
    return RecordingKazooClient


def _client(options=None, watcher=None):
    options = options or ZkOptions(connection_string="zk1:2181,zk2:2181", connect_timeout=3.0)
    return KazooCoordinationClient(options, watcher or (lambda event: None))


def test_session_is_started_with_options(recording_kazoo):
    _client()
    (kazoo,) = recording_kazoo.instances
    assert kazoo.kwargs == {
        "hosts": "zk1:2181,zk2:2181",
        "timeout": 30.0,
        "client_id": None,
        "read_only": False,
    }
    assert kazoo.calls == [("start", 3.0)]


def test_session_credentials_resume_a_session(recording_kazoo):
    options = ZkOptions(
        connection_string="zk1:2181",
        session_id=0x1234,
        session_password=b"password",
        can_be_read_only=True,
    )
    client = _client(options)
    kazoo = recording_kazoo.instances[0]
    assert kazoo.kwargs["client_id"] == (0x1234, b"password")
    assert kazoo.kwargs["read_only"] is True
    assert client.session_id == 0x1234


def test_failed_start_closes_client(recording_kazoo):
    recording_kazoo.start_error = KazooTimeoutError("Connection time-out")
    with pytest.raises(CoordinationError):
        _client()
    assert recording_kazoo.instances[0].calls[-1] == ("close",)


def test_operations_are_forwarded(recording_kazoo):
    client = _client()
    kazoo = recording_kazoo.instances[0]

    assert client.exists("/locks") is True
    assert client.create_persistent("/locks/orders") == "/locks/orders"
    assert client.create_ephemeral_sequential("/locks/orders/node") == "/locks/orders/node0000000001"
    client.delete("/locks/orders/node0000000001")
    assert client.get_children("/locks/orders") == ["node0000000001"]

    assert kazoo.calls[1:] == [
        ("exists", "/locks"),
        ("create", "/locks/orders", False, False),
        ("create", "/locks/orders/node", True, True),
        ("delete", "/locks/orders/node0000000001"),
        ("get_children", "/locks/orders"),
    ]
    assert kazoo.watchers["/locks"] is None


def test_watch_notifications_are_translated(recording_kazoo):
    received = []
    client = _client(watcher=received.append)
    kazoo = recording_kazoo.instances[0]

    client.exists("/locks/orders/node0000000001", watch=True)
    kazoo.watchers["/locks/orders/node0000000001"](
        WatchedEvent(EventType.DELETED, KeeperState.CONNECTED, "/locks/orders/node0000000001")
    )

    assert len(received) == 1
    assert received[0].path == "/locks/orders/node0000000001"
    assert received[0].type is WatchEventType.DELETED


def test_watcher_failure_does_not_escape(recording_kazoo):
    def failing(event):
        raise RuntimeError("boom")

    client = _client(watcher=failing)
    client.exists("/locks/a", watch=True)
    recording_kazoo.instances[0].watchers["/locks/a"](WatchedEvent(EventType.DELETED, KeeperState.CONNECTED, "/locks/a"))


@pytest.mark.parametrize(
    ("kazoo_error", "expected"),
    [
        (NoNodeError(), NodeNotFoundError),
        (KazooNodeExistsError(), NodeExistsError),
        (ConnectionLoss(), CoordinationError),
    ],
)
def test_driver_errors_are_translated(recording_kazoo, kazoo_error, expected):
    client = _client()
    recording_kazoo.instances[0].raise_on_call = kazoo_error
    with pytest.raises(expected) as exc_info:
        client.delete("/locks/orders/node0000000001")
    assert exc_info.value.path == "/locks/orders/node0000000001"


@pytest.mark.parametrize(
    ("keeper_state", "expected"),
    [
        (KeeperState.CONNECTED, SessionState.CONNECTED),
        (KeeperState.CONNECTED_RO, SessionState.CONNECTED_READ_ONLY),
        (KeeperState.CONNECTING, SessionState.CONNECTING),
        (KeeperState.EXPIRED_SESSION, SessionState.EXPIRED),
        (KeeperState.CLOSED, SessionState.CLOSED),
    ],
)
def test_session_state_mapping(recording_kazoo, keeper_state, expected):
    client = _client()
    recording_kazoo.instances[0].client_state = keeper_state
    assert client.state is expected


def test_close_stops_then_closes(recording_kazoo):
    client = _client()
    client.close()
    assert recording_kazoo.instances[0].calls[-2:] == [("stop",), ("close",)]


def test_close_failure_is_translated_and_still_closes(recording_kazoo):
    client = _client()
    kazoo = recording_kazoo.instances[0]
    kazoo.stop_error = WriterNotClosedException()

    with pytest.raises(CoordinationError):
        client.close()
    assert kazoo.calls[-2:] == [("stop",), ("close",)]
