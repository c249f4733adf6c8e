"""
Custom exception classes for the car-rental back office.

Services raise these; a single error handler registered in ``create_app``
turns them into ``{"error": message}`` JSON responses with the matching
HTTP status code.
"""


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500

    def __init__(self, message: str = "Error: internal server error") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class NotFoundError(AppError):
    """Raised when a car, customer, booking or other entity does not exist."""

    status_code = 404

    def __init__(self, message: str = "Error: not found") -> None:
        super().__init__(message)


class ConflictError(AppError):
    """Raised on a booking overlap or a duplicate unique field."""

    status_code = 409

    def __init__(self, message: str = "Error: conflict") -> None:
        super().__init__(message)


class InvalidTransitionError(ConflictError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, message: str = "Error: invalid status transition") -> None:
        super().__init__(message)


class ValidationError(AppError):
    """Raised when request input is missing or malformed."""

    status_code = 400

    def __init__(self, message: str = "Error: invalid input") -> None:
        super().__init__(message)


class AuthenticationError(AppError):
    """Raised when the bearer token is missing, invalid or the user is inactive."""

    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(AppError):
    """Raised when the current user's role lacks the required permission."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action") -> None:
        super().__init__(message)
