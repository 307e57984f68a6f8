# Client subpackage

from .coordination_client import ClientFactory, CoordinationClient, WatchCallback
from .kazoo_client import KazooCoordinationClient

__all__ = [
    "ClientFactory",
    "CoordinationClient",
    "KazooCoordinationClient",
    "WatchCallback",
]
