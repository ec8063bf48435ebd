"""Error taxonomy for session registry and transcript operations."""
from __future__ import annotations


class SessionError(Exception):
    """Base class for failures that surface as an error result."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SessionError, ValueError):
    """Caller input rejected before any I/O happened."""

    kind = "validation"

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(SessionError, LookupError):
    kind = "not_found"


class GatewayError(SessionError, RuntimeError):
    """External CLI timed out, exited non-zero, or printed unusable output."""

    kind = "gateway"
