"""
Custom exceptions for repository and store operations.

These are the public, app-level errors. Callers (route handlers, scripts, tests)
catch these and never SQLAlchemy/SQLite exceptions directly.

| Taxonomy         | Exception               | error_code          | HTTP |
| ---------------- | ----------------------- | ------------------- | ---- |
| InvalidInput     | `InvalidInputError`     | `invalid_input`     | 400  |
| Conflict         | `DuplicateError`        | `duplicate`         | 409  |
| NotFound         | `NotFoundError`         | `not_found`         | 404  |
| StoreUnavailable | `StoreUnavailableError` | `store_unavailable` | 503  |
"""

from typing import Iterable


class RepositoryError(Exception):
    """
    Base exception for repository/store errors.

    Subclasses pin `error_code` (the short code clients switch on) and
    `status_code`. A bare `RepositoryError` has no code and maps to 400.

    Attributes:
        message: text safe to show to clients
        fields: camelCase column names involved, e.g. ['userName'], or None
    """

    error_code: str | None = None
    status_code: int = 400

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None

    def __str__(self) -> str:
        details = []
        if self.fields:
            details.append("fields: " + ", ".join(self.fields))
        if self.error_code:
            details.append("code: " + self.error_code)
        return f"{self.message} ({'; '.join(details)})" if details else self.message

    def to_payload(self) -> dict:
        """
        Body for an HTTP error response.

            {
                "detail": "Conversation already exists",
                "code": "duplicate",
                "fields": ["userName", "analysisId"],
            }

        `code` and `fields` are left out when unset.
        """
        body: dict = {"detail": self.message}
        if self.error_code:
            body["code"] = self.error_code
        if self.fields:
            body["fields"] = list(self.fields)
        return body

    def http_status(self) -> int:
        return self.status_code


class NotFoundError(RepositoryError):
    error_code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields)


class DuplicateError(RepositoryError):
    """Uniqueness violation reported by the database (Conflict)."""

    error_code = "duplicate"
    status_code = 409


class InvalidInputError(RepositoryError):
    """A required value is missing or blank. Caller error; never retried."""

    error_code = "invalid_input"


class StoreUnavailableError(RepositoryError):
    """
    The database could not be opened, initialised, or queried.

    Fatal to the operation that hit it. Always chained (`raise ... from exc`) to
    the underlying driver error.
    """

    error_code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Store unavailable"):
        super().__init__(message)


__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "InvalidInputError",
    "StoreUnavailableError",
]
