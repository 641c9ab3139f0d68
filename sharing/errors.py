"""
Error codes and typed operation results for the sharing core.

Every write operation returns an OperationResult subclass instead of raising.
Failures carry a ShareErrorCode, a human-readable message and a details dict.
Callers that prefer exceptions call result.raise_for_error().
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ShareErrorCode(str, Enum):
    """Failure kinds surfaced by the sharing core."""

    # Validation errors (caller-correctable)
    RECURRING_NOT_SHAREABLE = "RECURRING_NOT_SHAREABLE"
    ALREADY_DELEGATED = "ALREADY_DELEGATED"
    INVALID_SPLIT = "INVALID_SPLIT"
    NOT_CONNECTED = "NOT_CONNECTED"
    SELF_SHARE = "SELF_SHARE"
    NOT_RECURRING = "NOT_RECURRING"
    INVALID_AMOUNT = "INVALID_AMOUNT"

    # State errors
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    APPOINTMENT_CANCELED = "APPOINTMENT_CANCELED"
    ALREADY_SETTLED = "ALREADY_SETTLED"

    # Lookup errors
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
    SHARE_NOT_FOUND = "SHARE_NOT_FOUND"

    # Storage errors
    DATABASE_ERROR = "DATABASE_ERROR"

    def __str__(self):
        return self.value


class ShareError(Exception):
    """Exception form of a failed OperationResult."""

    def __init__(
        self,
        error_code: ShareErrorCode,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.error_code = error_code
        self.message = message or error_code.value
        self.details = details or {}
        super().__init__(f"{error_code.value}: {self.message}")


@dataclass
class OperationResult:
    """
    Base result of a sharing core operation.

    Attributes:
        success: Whether the operation committed
        error_code: Failure kind (None on success)
        error_message: Failure description (None on success)
        details: Extra failure context (ids, offending values)
    """

    success: bool
    error_code: ShareErrorCode | None = None
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def raise_for_error(self) -> None:
        """Raise ShareError if the operation failed."""
        if not self.success:
            raise ShareError(
                self.error_code or ShareErrorCode.DATABASE_ERROR,
                self.error_message,
                self.details,
            )
