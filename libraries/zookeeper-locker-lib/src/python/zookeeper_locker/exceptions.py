"""Exception hierarchy for the ZooKeeper-backed distributed locker."""

from __future__ import annotations


class ZookeeperLockerError(Exception):
    """Base exception for all locker errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


# ── Configuration Errors ──────────────────────────────────────────

class NotInitializedError(ZookeeperLockerError):
    """Raised when the shared session is used before ``configure()``."""

    def __init__(self, message: str = "Locker session is not initialized. Call configure() first.") -> None:
        super().__init__(message)


class InvalidOptionsError(ZookeeperLockerError):
    """Raised when locker options fail validation."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid locker options. Reason: {reason}")


# ── Lock Errors ───────────────────────────────────────────────────

class LockTimeoutError(ZookeeperLockerError):
    """Raised when a lock cannot be acquired within the timeout.

    The queue node of the attempt has already been removed when this
    is raised, so no ``unlock()`` is required.
    """

    def __init__(
        self,
        lock_name: str,
        timeout: float,
        node_path: str | None = None,
    ) -> None:
        self.lock_name = lock_name
        self.timeout = timeout
        self.node_path = node_path
        super().__init__(
            f"Failed to acquire lock '{lock_name}' within {timeout:.1f}s."
        )


class LockStateError(ZookeeperLockerError):
    """Raised when a locker is used outside its lifecycle."""

    def __init__(self, lock_name: str, state: str, operation: str) -> None:
        self.lock_name = lock_name
        self.state = state
        self.operation = operation
        super().__init__(
            f"Cannot {operation} lock '{lock_name}' in state '{state}'."
        )


# ── Coordination Service Errors ───────────────────────────────────

class CoordinationError(ZookeeperLockerError):
    """Raised when a call to the coordination service fails."""

    def __init__(self, path: str | None = None, reason: str = "") -> None:
        self.path = path
        msg = "Coordination service call failed"
        if path:
            msg += f" for '{path}'"
        msg += "."
        if reason:
            msg += f" Reason: {reason}"
        super().__init__(msg)


class NodeExistsError(CoordinationError):
    """Raised when creating a node that already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(path, reason="Node already exists")


class NodeNotFoundError(CoordinationError):
    """Raised when operating on a node that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(path, reason="Node does not exist")


class QueueNodeLostError(CoordinationError):
    """Raised when a locker's own queue node disappeared while queued.

    This happens when the session that created the ephemeral node
    expired.
    """

    def __init__(self, path: str) -> None:
        super().__init__(path, reason="Queue node vanished, session probably expired")
