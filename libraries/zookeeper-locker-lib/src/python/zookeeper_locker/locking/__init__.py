# Locking subpackage

from .base_locker import BaseLocker
from .lock_handle import LockHandle
from .lock_queue import LockQueue, ensure_path, sort_queue
from .shared_locker import SharedLocker
from .zk_locker import ZkLocker

__all__ = [
    "BaseLocker",
    "LockHandle",
    "LockQueue",
    "SharedLocker",
    "ZkLocker",
    "ensure_path",
    "sort_queue",
]
