from flask import jsonify


class ApiError(Exception):
    """An expected failure that maps onto a `{error, code}` JSON response."""

    status_code = 400
    code = 'BAD_REQUEST'

    def __init__(self, message, code=None, status_code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_response(self):
        return jsonify({'error': self.message, 'code': self.code}), self.status_code


class ValidationError(ApiError):
    code = 'VALIDATION_ERROR'


class NotFoundError(ApiError):
    status_code = 404
    code = 'NOT_FOUND'


class ConflictError(ApiError):
    code = 'CONFLICT'


class ForeignKeyError(ApiError):
    code = 'FOREIGN_KEY_VIOLATION'


class InvalidTransition(ApiError):
    code = 'INVALID_SESSION_TRANSITION'


class DatabaseNotConfigured(ApiError):
    status_code = 500
    code = 'DATABASE_NOT_CONFIGURED'

    def __init__(self, message=None):
        super().__init__(
            message or "Database is not configured. Set DATABASE_URL and DATABASE_AUTH_TOKEN in .env."
        )


class SessionStoreUnavailable(ApiError):
    status_code = 500
    code = 'SESSION_STORE_UNAVAILABLE'

    def __init__(self, message=None):
        super().__init__(message or 'Session store connection not available.')
