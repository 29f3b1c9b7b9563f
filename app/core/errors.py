"""
API error taxonomy.

Every failure surfaced to a client is one of these. Each carries an HTTP
status and a stable machine-readable ``kind``; the handlers in app.main turn
them into the standard ``{success: false, message}`` envelope.
"""

from typing import Optional


class ApiError(Exception):
    """Base class for errors rendered into the response envelope."""

    status_code: int = 500
    kind: str = "internal"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "error": self.kind}


class InvalidInputError(ApiError):
    status_code = 400
    kind = "invalid_input"
    default_message = "Invalid input"


class UnauthorizedError(ApiError):
    status_code = 401
    kind = "unauthorized"
    default_message = "Unauthorized"


class ForbiddenError(ApiError):
    status_code = 403
    kind = "forbidden"
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    kind = "not_found"
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    kind = "conflict"
    default_message = "Resource already exists"


class ServiceUnavailableError(ApiError):
    status_code = 500
    kind = "service_unavailable"
    default_message = "Upstream service unavailable"


class InternalError(ApiError):
    pass
