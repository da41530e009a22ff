"""
errors.py - Error taxonomy shared by the parsers, the store and the API.

    ReceiptValidationError  -> malformed receipt field, HTTP 400
    KeyNotFoundError        -> unknown or expired id, HTTP 404
    StoreUnavailableError   -> retries exhausted / deadline passed
    StoreError              -> any other backend fault, never retried
    ConfigError             -> bad environment configuration at startup
"""

from __future__ import annotations

from models import ValidationReason


class ReceiptValidationError(ValueError):
    """A receipt field failed strict parsing."""

    def __init__(self, field: str, reason: ValidationReason, value: str, detail: str = "") -> None:
        self.field = field
        self.reason = reason
        self.value = value
        message = f"invalid {field} ({reason.value}): {value!r}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message)


class StoreError(RuntimeError):
    """Backend failure that is surfaced without retrying."""


class KeyNotFoundError(StoreError):
    """Key was never written or its TTL has elapsed."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"key does not exist in store: {key}")


class StoreUnavailableError(StoreError):
    """Every attempt timed out, or the caller's deadline passed."""

    def __init__(self, op: str, attempts: int) -> None:
        self.op = op
        self.attempts = attempts
        super().__init__(f"store {op} timed out after {attempts} attempt(s)")


class ConfigError(ValueError):
    """An environment variable is missing or malformed."""
