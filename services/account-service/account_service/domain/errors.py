"""Errors raised by account workflows; the HTTP layer maps each to a status code."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for recoverable account directory failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AccountError):
    """Input is missing or malformed."""


class ConflictError(AccountError):
    """An account with the same normalized email already exists."""


class AuthorizationError(AccountError):
    """The actor lacks the role required for the operation."""


class NotFoundError(AccountError):
    """No account exists with the given identifier."""
