from .locker_config import load_options

__all__ = [
    "load_options",
]
