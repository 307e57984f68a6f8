"""Queue lock protocol shared by the private-client and shared-client lockers.

A lock attempt appends an ephemeral sequential node to the lock's
queue and blocks the calling thread until that node reaches rank 0 or
the timeout elapses. Wakeups arrive on driver threads and only set a
per-attempt event; the waiting thread always re-validates its rank
against the queue itself before declaring success, so a stale or
spurious wakeup can never grant the lock.

Subclasses decide where the session comes from and how wakeups are
routed to :meth:`BaseLocker._signal`.
"""

from __future__ import annotations

import abc
import logging
import threading
import time

from prometheus_client import Counter, Gauge, Histogram

from ..client.coordination_client import CoordinationClient
from ..exceptions import CoordinationError, LockStateError, LockTimeoutError
from ..models import LockState, QueueNode
from .lock_handle import LockHandle
from .lock_queue import LockQueue

logger = logging.getLogger(__name__)

LOCK_ACQUIRE_COUNTER = Counter("zkl_lock_acquire_total", "Total number of locks acquired", ["lock_name", "mode"])
LOCK_TIMEOUT_COUNTER = Counter("zkl_lock_timeout_total", "Total number of lock attempts that timed out", ["lock_name", "mode"])
LOCK_WAIT_HISTOGRAM = Histogram("zkl_lock_wait_duration_seconds", "Time spent queued before a lock was acquired", ["lock_name", "mode"])
LOCKS_HELD = Gauge("zkl_lock_held", "Number of locks currently held by this process", ["lock_name", "mode"])


class BaseLocker(abc.ABC):
    """One attempt to hold a named lock.

    An instance goes through ``IDLE -> NODE_CREATED -> [WAITING ->]
    ACQUIRED -> RELEASED``, or ends in ``TIMED_OUT`` / ``FAILED``. It
    cannot be reused once it leaves ``IDLE``; create a new locker for
    every attempt.

    Parameters:
        lock_name: Name of the lock; becomes one path segment.
        timeout: Seconds to wait in the queue before giving up.
    """

    mode = "base"

    def __init__(self, lock_name: str, timeout: float) -> None:
        if not lock_name or "/" in lock_name:
            raise ValueError(f"Invalid lock name: {lock_name!r}")
        if timeout <= 0:
            raise ValueError(f"Lock timeout must be positive, got {timeout}")
        self._lock_name = lock_name
        self._timeout = timeout

        self._state = LockState.IDLE
        self._state_lock = threading.Lock()
        self._started = False
        self._node: QueueNode | None = None
        self._wakeup = threading.Event()

    # ── Properties ────────────────────────────────────────────────

    @property
    def lock_name(self) -> str:
        return self._lock_name

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def state(self) -> LockState:
        with self._state_lock:
            return self._state

    @property
    def node(self) -> QueueNode | None:
        return self._node

    # ── Public API ────────────────────────────────────────────────

    def lock(self) -> LockHandle:
        """Join the queue and block until the lock is held.

        Returns:
            A :class:`LockHandle` context manager.

        Raises:
            LockTimeoutError: If the lock is not acquired within the
                timeout. The queue node is already removed.
            LockStateError: If this locker was used before.
            CoordinationError: If the coordination service fails.
        """
        with self._state_lock:
            if self._started:
                raise LockStateError(self._lock_name, self._state.value, "lock")
            self._started = True

        queue: LockQueue | None = None
        try:
            queue = LockQueue.for_lock(self._open_client(), self._lock_name, self._root_path)
            queue.ensure_exists()
            node = queue.enqueue()
            with self._state_lock:
                self._node = node
                self._state = LockState.NODE_CREATED
            self._on_node_created(node)
            self._await_rank_zero(queue, node)
        except LockTimeoutError:
            raise
        except Exception:
            self._fail(queue)
            raise
        return LockHandle(self)

    def unlock(self) -> None:
        """Delete the held queue node and release its resources.

        A no-op after a timeout, a failure or a previous release.

        Raises:
            LockStateError: If the lock was never acquired.
        """
        with self._state_lock:
            state = self._state
            if state.is_terminal:
                logger.debug("Lock '%s' already %s; unlock ignored", self._lock_name, state.value)
                return
            if state is not LockState.ACQUIRED:
                raise LockStateError(self._lock_name, state.value, "unlock")
            self._state = LockState.RELEASED

        node = self._node
        assert node is not None
        try:
            queue = LockQueue.for_lock(self._release_client(), self._lock_name, self._root_path)
            if not queue.remove(node):
                logger.warning("Queue node %s was already gone at release", node.path)
        finally:
            LOCKS_HELD.labels(lock_name=self._lock_name, mode=self.mode).dec()
            self._release_resources(node)
        logger.debug("Released lock '%s' (%s)", self._lock_name, node.path)

    def __enter__(self) -> BaseLocker:
        self.lock()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.unlock()

    def __repr__(self) -> str:
        node = self._node.path if self._node is not None else None
        return f"{self.__class__.__name__}(lock={self._lock_name!r}, node={node!r}, state={self.state.value})"

    # ── Hooks ─────────────────────────────────────────────────────

    @property
    @abc.abstractmethod
    def _root_path(self) -> str:
        """Container under which the lock's queue lives."""
        ...

    @abc.abstractmethod
    def _open_client(self) -> CoordinationClient:
        """Return the session used for this attempt."""
        ...

    @abc.abstractmethod
    def _release_client(self) -> CoordinationClient:
        """Return the session used to delete the held node."""
        ...

    def _on_node_created(self, node: QueueNode) -> None:
        """Called once the queue node exists, before any watch is armed."""

    def _release_resources(self, node: QueueNode | None) -> None:
        """Called exactly once when the attempt ends, whatever the outcome."""

    def _wait_slice(self, remaining: float) -> float:
        """Longest single wait before the rank is re-validated."""
        return remaining

    def _signal(self) -> None:
        """Wake the waiting thread. Safe to call from any thread."""
        self._wakeup.set()

    # ── Private ───────────────────────────────────────────────────

    def _await_rank_zero(self, queue: LockQueue, node: QueueNode) -> None:
        started = time.monotonic()
        deadline = started + self._timeout
        watched: str | None = None

        while True:
            predecessor = queue.watch_predecessor(node)
            if predecessor is None:
                break
            if time.monotonic() >= deadline:
                self._time_out(queue, node)
            if predecessor != watched:
                watched = predecessor
                with self._state_lock:
                    self._state = LockState.WAITING
                logger.debug("%s waiting on predecessor %s", node.path, predecessor)
            remaining = deadline - time.monotonic()
            if remaining > 0 and self._wakeup.wait(self._wait_slice(remaining)):
                self._wakeup.clear()

        with self._state_lock:
            self._state = LockState.ACQUIRED
        waited = time.monotonic() - started
        LOCK_ACQUIRE_COUNTER.labels(lock_name=self._lock_name, mode=self.mode).inc()
        LOCK_WAIT_HISTOGRAM.labels(lock_name=self._lock_name, mode=self.mode).observe(waited)
        LOCKS_HELD.labels(lock_name=self._lock_name, mode=self.mode).inc()
        logger.debug("Acquired lock '%s' (%s) after %.3fs", self._lock_name, node.path, waited)

    def _time_out(self, queue: LockQueue, node: QueueNode) -> None:
        try:
            queue.remove(node)
        finally:
            self._release_resources(node)
            with self._state_lock:
                self._state = LockState.TIMED_OUT
        LOCK_TIMEOUT_COUNTER.labels(lock_name=self._lock_name, mode=self.mode).inc()
        logger.warning(
            "Timed out after %.1fs waiting for lock '%s'; removed %s",
            self._timeout,
            self._lock_name,
            node.path,
        )
        raise LockTimeoutError(self._lock_name, self._timeout, node.path)

    def _fail(self, queue: LockQueue | None) -> None:
        with self._state_lock:
            if self._state.is_terminal:
                return
            self._state = LockState.FAILED
        node = self._node
        if queue is not None and node is not None:
            try:
                queue.remove(node)
            except CoordinationError:
                logger.warning("Could not remove queue node %s after failure", node.path, exc_info=True)
        self._release_resources(node)
