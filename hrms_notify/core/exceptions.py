# hrms_notify/core/exceptions.py


class ServiceError(Exception):
    """Base error; carries the HTTP status the API layer answers with."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ServiceError):
    """Missing, invalid or expired token, or an account that no longer exists."""

    status_code = 401
    default_message = "Not authenticated"


class Forbidden(ServiceError):
    """Authenticated but not allowed (role too low or not the owner)."""

    status_code = 403
    default_message = "Forbidden: insufficient permissions"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Already exists"


class ValidationFailed(ServiceError):
    status_code = 422
    default_message = "Invalid request"


class ServerFault(ServiceError):
    status_code = 500
