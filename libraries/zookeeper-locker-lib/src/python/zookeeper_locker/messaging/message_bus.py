"""Topic-keyed publish/subscribe bus with weakly held subscribers.

Each topic maps to at most one subscriber; subscribing again to the
same topic replaces the previous entry. The bus never keeps a
subscriber alive: once the subscriber is garbage collected, publishing
to its topic is a silent no-op and a periodic sweep drops the dead
entry.

Subscribers are callables taking the message. Bound methods are held
through :class:`weakref.WeakMethod`, so they live exactly as long as
their instance. A lambda or local function passed directly is
collected as soon as the caller drops it; keep a reference.
"""

from __future__ import annotations

import inspect
import logging
import threading
import weakref
from typing import Any, Callable, Generic, TypeVar

from prometheus_client import Counter

logger = logging.getLogger(__name__)

EVICTED_TOPICS_COUNTER = Counter("zkl_message_bus_evicted_total", "Total number of dead topics removed by message bus sweeps", ["bus"])

# How often dead topics are swept (seconds)
_DEFAULT_SWEEP_INTERVAL = 300.0


T = TypeVar("T")


class MessageBus(Generic[T]):
    """Thread-safe topic registry delivering messages of type ``T``.

    Parameters:
        name: Name used for the sweep thread and metrics.
        sweep_interval: Seconds between sweeps of dead topics. ``0``
            disables the background sweep; :meth:`sweep` can still be
            called explicitly.
    """

    _shared: dict[type, MessageBus[Any]] = {}
    _shared_lock = threading.Lock()

    def __init__(
        self,
        name: str = "message-bus",
        sweep_interval: float = _DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._name = name
        self._lock = threading.Lock()
        self._topics: dict[str, weakref.ref] = {}

        # ── Sweep background thread ───────────────────────────────
        self._sweep_interval = sweep_interval
        self._stop_event = threading.Event()
        self._sweep_thread: threading.Thread | None = None
        if sweep_interval > 0:
            self._sweep_thread = threading.Thread(
                target=self._sweep_loop,
                name=f"{name}-sweep",
                daemon=True,
            )
            self._sweep_thread.start()

    @classmethod
    def shared(cls, message_type: type[T]) -> MessageBus[T]:
        """Return the process-wide bus for *message_type*."""
        with cls._shared_lock:
            bus = cls._shared.get(message_type)
            if bus is None:
                bus = cls(name=f"{message_type.__name__.lower()}-bus")
                cls._shared[message_type] = bus
            return bus

    # ── Public API ────────────────────────────────────────────────

    def subscribe(self, topic: str, subscriber: Callable[[T], None]) -> None:
        """Register *subscriber* for *topic*, replacing any previous entry."""
        if inspect.ismethod(subscriber):
            ref: weakref.ref = weakref.WeakMethod(subscriber)
        else:
            ref = weakref.ref(subscriber)
        with self._lock:
            self._topics[topic] = ref

    def publish(self, topic: str, message: T) -> bool:
        """Deliver *message* synchronously to the subscriber of *topic*.

        Returns:
            True if a live subscriber received the message. Unknown
            topics and collected subscribers yield False.
        """
        with self._lock:
            ref = self._topics.get(topic)
        if ref is None:
            return False
        subscriber = ref()
        if subscriber is None:
            return False
        subscriber(message)
        return True

    def unsubscribe(self, topic: str) -> None:
        """Remove *topic* unconditionally."""
        with self._lock:
            self._topics.pop(topic, None)

    def sweep(self) -> int:
        """Remove every topic whose subscriber was collected.

        Runs under the registry lock, so a concurrent :meth:`subscribe`
        either lands before the scan (and is seen alive) or after it
        (and is untouched).

        Returns:
            Number of topics removed.
        """
        with self._lock:
            dead = [topic for topic, ref in self._topics.items() if ref() is None]
            for topic in dead:
                del self._topics[topic]
        if dead:
            EVICTED_TOPICS_COUNTER.labels(bus=self._name).inc(len(dead))
            logger.info("Swept %d dead topic(s) from %s", len(dead), self._name)
        return len(dead)

    def has_topic(self, topic: str) -> bool:
        with self._lock:
            return topic in self._topics

    def __len__(self) -> int:
        with self._lock:
            return len(self._topics)

    def close(self) -> None:
        """Stop the background sweep."""
        self._stop_event.set()
        if self._sweep_thread is not None:
            self._sweep_thread.join(timeout=5.0)
            self._sweep_thread = None

    # ── Private ───────────────────────────────────────────────────

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Message bus sweep failed on %s", self._name)
