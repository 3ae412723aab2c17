"""Role checks shared by every feature module."""

from .decorators import require_roles
from .logics.policies import RoleDispatch

__all__ = ['RoleDispatch', 'require_roles']
