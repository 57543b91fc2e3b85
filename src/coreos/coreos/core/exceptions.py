from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    `errors` maps a field name to its messages; `context` carries extra values
    returned to the client next to the message (e.g. the available balance).
    """

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[Mapping[str, Sequence[str]]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.errors = {k: list(v) for k, v in (errors or {}).items()}
        self.context = dict(context or {})


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""
