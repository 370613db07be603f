"""
Application errors

Each error carries the HTTP status it is rendered with. Responses always take
the shape {"error": message}.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class NotFound(AppError):
    status_code = 404


class InvalidId(AppError):
    status_code = 400


class Conflict(AppError):
    # Duplicate usernames are reported as 400, not 409.
    status_code = 400


class Unauthorized(AppError):
    status_code = 400


class ServerError(AppError):
    status_code = 500


class StoreUnavailable(Exception):
    """Raised when MongoDB cannot be reached at startup."""
