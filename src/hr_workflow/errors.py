"""Typed failures raised by the workflow services.

Every failure carries a user-facing ``message``. The orchestrator turns these
into ``OperationResult(success=False, ...)``; anything that is not a
``WorkflowError`` is treated as an infrastructure failure.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for user-visible, non-retryable failures."""

    default_message = "Operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(WorkflowError):
    """No caller identity is present."""

    default_message = "Unauthorized"


class PermissionDenied(WorkflowError):
    """Identity present but lacks the role or ownership required."""

    default_message = "You don't have permission to perform this action"


class NotFound(WorkflowError):
    """Referenced record does not exist."""

    def __init__(self, entity: str, entity_id: object | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidTransitionError(WorkflowError):
    """Raised when a task status transition is not allowed."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        super().__init__(reason or f"Invalid transition from '{from_status}' to '{to_status}'")


class InvalidAdjustment(WorkflowError):
    """A salary change whose sign does not match its type."""

    default_message = "BONUS values must be positive, DEDUCTION values must be negative"


class DuplicateSalaryPeriod(WorkflowError):
    """A salary record already exists for the employee and month."""


class ImmutableRecord(WorkflowError):
    """Attempt to modify or delete a paid salary record."""

    default_message = "Cannot modify a paid salary record"


class RecordInUse(WorkflowError):
    """Deletion blocked because dependent records exist."""


class ValidationFailed(WorkflowError):
    """Input rejected before reaching the store."""
