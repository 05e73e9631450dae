"""
core/errors.py -- Error taxonomy shared by the auth core and the API layer.

Every failure the core can report is an AccountError subclass carrying a
kind (what went wrong, for the transport to map onto a status code) and a
machine-readable code (for API clients). The core raises at the point of
detection and never retries; api/main.py owns the kind -> HTTP status table.

User-facing messages are deliberately generic where detail would leak
information: one message for any credential failure (no account
enumeration), one for any authorization failure (the required role is never
named).

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    invalid_argument = "invalid_argument"
    duplicate_account = "duplicate_account"
    not_authenticated = "not_authenticated"
    not_authorized = "not_authorized"
    not_found = "not_found"
    system_failure = "system_failure"


class AccountError(Exception):
    """Base class for every error the accounts core raises on purpose."""

    kind: ErrorKind = ErrorKind.system_failure
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(AccountError):
    """Blank or too-short fields, mismatched confirmation, bad enum values."""

    kind = ErrorKind.invalid_argument
    code = "invalid_argument"
    default_message = "Invalid request parameters."


class DuplicateAccount(AccountError):
    kind = ErrorKind.duplicate_account
    code = "duplicate_account"
    default_message = "Account already exists."


class NotAuthenticated(AccountError):
    """No session, an invalid or expired token, or a session whose user is gone."""

    kind = ErrorKind.not_authenticated
    code = "unauthorized"
    default_message = "Authentication required."


class InvalidCredentials(NotAuthenticated):
    """Unknown account or wrong password. Always the same message."""

    code = "bad_credentials"
    default_message = "Account or password is incorrect."


class NotAuthorized(AccountError):
    kind = ErrorKind.not_authorized
    code = "forbidden"
    default_message = "No permission."


class NotFound(AccountError):
    kind = ErrorKind.not_found
    code = "not_found"
    default_message = "Requested record does not exist."


class SystemFailure(AccountError):
    """The persistence layer failed after validation passed. Fatal, not retried."""

    kind = ErrorKind.system_failure
    code = "internal_error"
    default_message = "Internal system error."


def throw_if(condition: bool, error: AccountError) -> None:
    """Raise error when condition holds. Keeps guard clauses on one line."""
    if condition:
        raise error
