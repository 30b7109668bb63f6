"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. ``message`` is the
only part ever shown to clients, so it must stay generic; specifics belong in
``code`` and ``details``, which are logged operator-side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for operator-side diagnostics."""

    code: str
    hint: str
    errno: int
    path: str
    max_bytes: int
    actual_value: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Client-safe, generic error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a submission is missing, mistyped or malformed."""


class PublicKeyUnavailableError(AppError):
    """Raised when the public key file has not been provisioned."""


class PublicKeyFormatError(AppError):
    """Raised when the public key file is not an armored public key block."""


class StorageAppError(AppError):
    """Raised when appending to the feedback log fails."""


class StorageFullError(StorageAppError):
    """Raised when the device holding the feedback log is out of space."""
