from functools import wraps

from flask import abort
from flask_login import current_user

from ...core.error_handlers import AuthorizationError


def require_roles(*roles):
    """
    Route decorator that lets only the given roles through.
    Anonymous callers get 401, authenticated callers with another role get 403.
    """
    allowed = {getattr(role, 'value', role) for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)

            if current_user.role.value not in allowed:
                raise AuthorizationError('You do not have permission to perform this action')

            return f(*args, **kwargs)
        return decorated_function
    return decorator
