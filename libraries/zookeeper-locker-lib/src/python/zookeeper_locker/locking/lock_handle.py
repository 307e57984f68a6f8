"""Lock handle — context manager for a held queue lock."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base_locker import BaseLocker


class LockHandle:
    """Proof that this process holds a lock.

    Returned by ``locker.lock()``. Supports ``with`` statement for
    automatic release::

        with locker.lock():
            # critical section
        # queue node deleted

    Parameters:
        locker: The locker whose queue node is held.
    """

    def __init__(self, locker: BaseLocker) -> None:
        self._locker = locker

    @property
    def lock_name(self) -> str:
        return self._locker.lock_name

    @property
    def node_path(self) -> str | None:
        node = self._locker.node
        return node.path if node is not None else None

    @property
    def is_released(self) -> bool:
        return self._locker.state.is_terminal

    def release(self) -> None:
        """Release the lock. Releasing twice is a no-op."""
        self._locker.unlock()

    def __enter__(self) -> LockHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.is_released else "held"
        return f"LockHandle(lock={self.lock_name!r}, node={self.node_path!r}, {state})"
