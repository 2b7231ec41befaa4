"""Error taxonomy for the billing engine.

Every error carries a stable ``code`` that the API layer maps to an HTTP
status. Errors are raised at the point of the attempted operation; nothing in
the engine clamps or coerces invalid input.
"""

from __future__ import annotations

from typing import Any


class BillingError(Exception):
    """Base class for all billing engine errors."""

    code = "BILLING_ERROR"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)


class ValidationError(BillingError):
    """Malformed input: negative money, bad date range, empty dispute notes."""

    code = "VALIDATION_ERROR"


class PreconditionError(BillingError):
    """Operation attempted without a required prerequisite state."""

    code = "PRECONDITION_FAILED"


class NumberingConflictError(PreconditionError):
    """Raised when a sequence number was taken by a concurrent writer.

    The caller is expected to retry the whole unit of work.
    """

    code = "NUMBERING_CONFLICT"


class InvalidStateError(BillingError):
    """Mutation attempted on a frozen (paid) pay application."""

    code = "INVALID_STATE"


class InvalidTransitionError(BillingError):
    """Raised when a workflow transition is not permitted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, from_status=from_status, to_status=to_status)


class PermissionDeniedError(BillingError, PermissionError):
    """Certifier-only operation attempted without the certifier role."""

    code = "PERMISSION_DENIED"


class NotFoundError(BillingError):
    """Referenced record does not exist."""

    code = "NOT_FOUND"
