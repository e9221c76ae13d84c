"""
Domain exceptions.

Services raise these; app.main maps them onto HTTP responses using the
status_code each class carries. Nothing below the API layer imports FastAPI.
"""


class AppError(Exception):
    """Base class for errors that reach the client"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InvalidPolicyDatesError(BadRequestError):
    """Policy effective/expiration dates break the term rules"""


class InvalidStatusTransitionError(BadRequestError):
    """Requested status change is not allowed from the current status"""

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(f"Cannot move {entity} from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested
