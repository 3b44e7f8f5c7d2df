"""Task state machine with role-aware transition policies."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from hr_workflow.errors import InvalidTransitionError, ValidationFailed
from hr_workflow.identity import Actor


class TaskStatus(str, Enum):
    """Task status values."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


FORWARD_ONLY_MESSAGE = "You can only move tasks forward one step at a time"


@runtime_checkable
class TransitionPolicy(Protocol):
    """Decides whether a status change is allowed for one class of actor."""

    def allows(self, from_status: str, to_status: str) -> bool:
        ...


class AdminPolicy:
    """Admins may set any status, including moving a task backward."""

    def allows(self, from_status: str, to_status: str) -> bool:
        return TaskStateMachine.is_valid_status(from_status) and TaskStateMachine.is_valid_status(
            to_status
        )


class AssigneePolicy:
    """Assignees may only advance a task by a single step."""

    # {from_status: the only allowed to_status}
    FORWARD_STEPS: dict[str, str] = {
        TaskStatus.PENDING.value: TaskStatus.IN_PROGRESS.value,
        TaskStatus.IN_PROGRESS.value: TaskStatus.DONE.value,
    }

    def allows(self, from_status: str, to_status: str) -> bool:
        return self.FORWARD_STEPS.get(from_status) == to_status


class TaskStateMachine:
    """State machine for task status transitions.

    Lifecycle: PENDING → IN_PROGRESS → DONE.

    - Assignees move one step forward at a time; same-state requests,
      skips and backward moves are rejected.
    - Admins may request any status, which is how mistakes are corrected.
    """

    ORDER: tuple[str, ...] = (
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.DONE,
    )

    INITIAL_STATUS = TaskStatus.PENDING

    @classmethod
    def is_valid_status(cls, status: str) -> bool:
        """Check if a value is a known task status."""
        return status in cls.ORDER

    @classmethod
    def parse_status(cls, status: str) -> TaskStatus:
        """Normalize a requested status, raising ValidationFailed if unknown."""
        try:
            return TaskStatus(status)
        except ValueError:
            raise ValidationFailed("Invalid task status")

    @classmethod
    def policy_for(cls, actor: Actor) -> TransitionPolicy:
        """Select the transition policy for an actor's role."""
        if actor.is_admin:
            return AdminPolicy()
        return AssigneePolicy()

    @classmethod
    def can_transition(cls, actor: Actor, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid for the actor."""
        return cls.policy_for(actor).allows(from_status, to_status)

    @classmethod
    def validate_transition(cls, actor: Actor, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(actor, from_status, to_status):
            reason = None if actor.is_admin else FORWARD_ONLY_MESSAGE
            raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def is_backward(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition moves the task to an earlier status."""
        return cls.ORDER.index(to_status) < cls.ORDER.index(from_status)

    @classmethod
    def get_next_statuses(cls, actor: Actor, current_status: str) -> list[str]:
        """Get list of statuses the actor may request from the current status."""
        policy = cls.policy_for(actor)
        return [s.value for s in cls.ORDER if policy.allows(current_status, s)]

    @classmethod
    def describe(cls, from_status: str, to_status: str) -> str:
        """Audit description for a status change."""
        if cls.is_backward(from_status, to_status):
            return f"Status reverted from {_value(from_status)} to {_value(to_status)}"
        return f"Status changed from {_value(from_status)} to {_value(to_status)}"


def _value(status: str) -> str:
    return status.value if isinstance(status, TaskStatus) else status
