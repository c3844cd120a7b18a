"""Error taxonomy for the user administration API.

Every error carries the HTTP status it maps to, a human readable message and
a machine readable ``kind``. Extra body fields (``missing_fields``,
``password_errors`` ...) are exposed through :meth:`UserApiError.body`.
"""

from __future__ import annotations

from typing import Any


class UserApiError(Exception):
    """Base class for failures that terminate a request."""

    status_code: int = 500
    kind: str = "error"

    def __init__(self, message: str, *, kind: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.extra = extra

    def body(self) -> dict[str, Any]:
        return {"status": "error", "message": self.message, **self.extra}


class AuthRequired(UserApiError):
    status_code = 401
    kind = "auth_required"


class Forbidden(UserApiError):
    status_code = 403
    kind = "forbidden"


class ValidationError(UserApiError):
    status_code = 400
    kind = "invalid"


class ConflictError(UserApiError):
    status_code = 409
    kind = "username_exists"


class QuotaExceeded(UserApiError):
    status_code = 403
    kind = "user_limit_reached"


class PersistenceFailure(UserApiError):
    status_code = 500
    kind = "persistence_failure"


class PersistenceError(Exception):
    """Raised by the persistence gateway when a change set cannot be applied."""
