"""Domain error taxonomy.

Services raise these; lms/api/errors.py maps them to HTTP responses and
the chat hub turns them into per-invocation Error frames.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for expected, client-attributable failures."""

    code = "domain_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(DomainError):
    """Malformed input, or a reference to something outside the parent entity."""

    code = "validation_error"


class NotFoundError(DomainError):
    code = "not_found"


class UnauthorizedError(DomainError):
    """Authenticated, but not allowed to touch this course/room."""

    code = "unauthorized"


class ConflictError(DomainError):
    """Duplicate of a row that must be unique (enrollment, completion)."""

    code = "conflict"
