from injector import Binder, Module

from .session_manager import SessionManager, default_session_manager


class LockerModule(Module):
    """Binds :class:`SessionManager` to the process-wide instance.

    Services injected with a ``SessionManager`` share the session used
    by the module-level ``configure``/``get_locker`` functions.
    """

    def configure(self, binder: Binder) -> None:
        binder.bind(SessionManager, to=default_session_manager())
