"""
Error taxonomy for the Mindspace service.

Each error carries the HTTP status the API layer answers with, so the
business logic can raise without knowing about FastAPI.
"""

from typing import Any


class MindspaceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(MindspaceError):
    """Malformed or out-of-range query/body parameters."""

    status_code = 400

    def __init__(
        self, details: list[dict[str, str]], message: str = "Validation failed"
    ) -> None:
        super().__init__(message)
        self.details = details

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Convert a pydantic (or FastAPI request) validation error."""
        details = []
        for error in exc.errors():
            loc = [
                str(part)
                for part in error.get("loc", ())
                if part not in ("query", "body", "path", "header")
            ]
            details.append(
                {"field": ".".join(loc) or "request", "message": error["msg"]}
            )
        return cls(details)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class NotFoundError(MindspaceError):
    """Target id absent, inactive or unpublished."""

    status_code = 404


class AuthError(MindspaceError):
    """Missing or invalid caller identity (401), or insufficient role (403)."""

    status_code = 401

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(MindspaceError):
    """Store read/write failure. The message is never shown to clients."""

    status_code = 500

    def to_payload(self) -> dict[str, Any]:
        return {"error": "Internal server error"}
