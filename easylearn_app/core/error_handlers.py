"""
Error Handlers for EasyLearn

Provides:
- Custom exception classes for the business-rule taxonomy
- Consistent error response format
- Flask error handlers
"""

from typing import Any, Dict, Optional

from flask import current_app, jsonify, request


class EasyLearnError(Exception):
    """Base exception class for EasyLearn."""

    def __init__(
        self,
        message: str,
        code: str = 'UNKNOWN_ERROR',
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON response."""
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class NotFoundError(EasyLearnError):
    """Referenced entity does not exist."""

    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(
            message=message,
            code='NOT_FOUND',
            status_code=404,
            details={'resource': resource} if resource else None
        )


class InvalidStateError(EasyLearnError):
    """Operation violates a state-machine or business invariant."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code='INVALID_STATE',
            status_code=400
        )


class AuthorizationError(EasyLearnError):
    """Caller lacks the role or ownership relationship required."""

    def __init__(self, message: str = 'Access denied'):
        super().__init__(
            message=message,
            code='UNAUTHORIZED',
            status_code=403
        )


class ValidationError(EasyLearnError):
    """Input validation failed."""

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(
            message=message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={'errors': errors} if errors else None
        )


class ProviderError(EasyLearnError):
    """The external video provider call failed."""

    def __init__(self, message: str = 'Video provider request failed', operation: str = None):
        super().__init__(
            message=message,
            code='PROVIDER_FAILURE',
            status_code=502,
            details={'operation': operation} if operation else None
        )


def error_response(
    message: str,
    code: str = 'ERROR',
    status_code: int = 400,
    details: Dict = None
) -> tuple:
    """Create a standardized error response."""
    response = {
        'success': False,
        'message': message,
        'code': code
    }
    if details:
        response['details'] = details

    return jsonify(response), status_code


def success_response(data: Any = None, message: str = None) -> dict:
    """Create a standardized success response."""
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    return response


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(EasyLearnError)
    def handle_easylearn_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code}: {error.message}")
        else:
            current_app.logger.info(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(401)
    def handle_unauthenticated(error):
        return error_response('Authentication required', 'UNAUTHENTICATED', 401)

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api/'):
            return error_response('Endpoint not found', 'NOT_FOUND', 404)
        return error

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return error_response('Method not allowed', 'METHOD_NOT_ALLOWED', 405)

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        if request.path.startswith('/api/'):
            return error_response('Internal server error', 'SERVER_ERROR', 500)
        return error
