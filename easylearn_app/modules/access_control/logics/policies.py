from typing import Any, Callable, Dict

from ....models.user import Role


class RoleDispatch:
    """Table of one handler per role.

    Every member of :class:`Role` must have a handler, so adding a role fails
    at import time until each table handles it.
    """

    def __init__(self, name: str, handlers: Dict[Role, Callable[..., Any]]):
        missing = [role.value for role in Role if role not in handlers]
        if missing:
            raise TypeError(f"Role dispatch '{name}' has no handler for: {', '.join(missing)}")
        self.name = name
        self._handlers = dict(handlers)

    def __call__(self, role, *args, **kwargs):
        return self._handlers[Role(role)](*args, **kwargs)


def allow(*_args, **_kwargs):
    """Handler for roles that pass a check unconditionally."""
    return True


def ignore(*_args, **_kwargs):
    """Handler for roles an operation does not track."""
    return None
