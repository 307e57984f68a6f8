"""Lock queue — the ordered set of sequential nodes under one lock path.

Rank is the zero-based position of a node after sorting all siblings
by their numeric sequence suffix. Rank 0 holds the lock. Each waiter
watches only the sibling directly ahead of it, so a release wakes a
single waiter instead of the whole queue.
"""

from __future__ import annotations

import logging

from ..client.coordination_client import CoordinationClient
from ..exceptions import CoordinationError, NodeExistsError, NodeNotFoundError, QueueNodeLostError
from ..models import DEFAULT_ROOT_PATH, QUEUE_NODE_PREFIX, QueueNode, sequence_of

logger = logging.getLogger(__name__)

# Upper bound on re-rankings caused by predecessors vanishing mid-check
_MAX_PREDECESSOR_CHECKS = 100


def sort_queue(children: list[str]) -> list[str]:
    """Order queue node names by sequence suffix, dropping non-tickets."""
    ranked: list[tuple[int, str]] = []
    for name in children:
        seq = sequence_of(name)
        if seq is not None:
            ranked.append((seq, name))
    ranked.sort()
    return [name for _, name in ranked]


def ensure_path(client: CoordinationClient, path: str) -> None:
    """Create *path* and its ancestors as persistent nodes if missing.

    Losing a creation race to another process is not an error.
    """
    current = ""
    for segment in path.strip("/").split("/"):
        current = f"{current}/{segment}"
        if client.exists(current):
            continue
        try:
            client.create_persistent(current)
            logger.debug("Created container %s", current)
        except NodeExistsError:
            pass


class LockQueue:
    """Operations on the queue stored at *path*.

    Parameters:
        client: Session used for every call.
        path: Full path of the queue container, e.g. ``/locks/orders``.
    """

    def __init__(self, client: CoordinationClient, path: str) -> None:
        self._client = client
        self._path = path.rstrip("/")

    @classmethod
    def for_lock(
        cls,
        client: CoordinationClient,
        lock_name: str,
        root_path: str = DEFAULT_ROOT_PATH,
    ) -> LockQueue:
        return cls(client, f"{root_path}/{lock_name}")

    @property
    def path(self) -> str:
        return self._path

    @property
    def lock_name(self) -> str:
        return self._path.rsplit("/", 1)[-1]

    # ── Queue container ───────────────────────────────────────────

    def ensure_exists(self) -> None:
        """Create the root and queue containers if missing."""
        ensure_path(self._client, self._path)

    # ── Queue nodes ───────────────────────────────────────────────

    def enqueue(self) -> QueueNode:
        """Append an ephemeral sequential node to the queue."""
        path = self._client.create_ephemeral_sequential(f"{self._path}/{QUEUE_NODE_PREFIX}")
        logger.debug("Queued %s", path)
        return QueueNode(path=path, lock_name=self.lock_name)

    def remove(self, node: QueueNode) -> bool:
        """Delete *node*. Returns False if it was already gone."""
        try:
            self._client.delete(node.path)
            return True
        except NodeNotFoundError:
            return False

    def ordered_children(self) -> list[str]:
        return sort_queue(self._client.get_children(self._path))

    def head(self) -> str | None:
        """Full path of the rank-0 node, or None for an empty queue."""
        children = self.ordered_children()
        if not children:
            return None
        return f"{self._path}/{children[0]}"

    def rank_of(self, node: QueueNode) -> int:
        children = self.ordered_children()
        try:
            return children.index(node.name)
        except ValueError:
            raise QueueNodeLostError(node.path) from None

    def watch_predecessor(self, node: QueueNode, watch: bool = True) -> str | None:
        """Arm a watch on the node directly ahead of *node*.

        If that predecessor disappears between listing and arming the
        watch, the queue is listed again. Predecessors only ever leave
        the queue, so the rank shrinks on every retry.

        Returns:
            The watched predecessor path, or None when *node* has rank 0.

        Raises:
            QueueNodeLostError: If *node* itself is no longer queued.
        """
        for _ in range(_MAX_PREDECESSOR_CHECKS):
            children = self.ordered_children()
            try:
                rank = children.index(node.name)
            except ValueError:
                raise QueueNodeLostError(node.path) from None
            if rank == 0:
                return None
            predecessor = f"{self._path}/{children[rank - 1]}"
            if self._client.exists(predecessor, watch=watch):
                return predecessor
            logger.debug(
                "Predecessor %s of %s vanished before its watch was armed",
                predecessor,
                node.path,
            )
        raise CoordinationError(
            node.path,
            reason=f"Predecessor check did not settle after {_MAX_PREDECESSOR_CHECKS} attempts",
        )
