"""
Error taxonomy shared by services and routes.

Every error carries a stable machine-readable ``code`` and a human ``message``.
Services raise these; ``taskflow.main`` renders them as
``{"error": code, "message": message}`` with the matching status.
"""

from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str = None, code: str = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_message = "Resource not found"


class InvalidArgument(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_argument"
    default_message = "Invalid request"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"
    default_message = "Resource already exists"


class Internal(AppError):
    pass
