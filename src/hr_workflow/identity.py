"""Caller identity as supplied by the external authentication layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID


class Role(str, Enum):
    """User roles."""

    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


@dataclass(frozen=True)
class Actor:
    """The user performing an operation."""

    id: UUID
    role: Role
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def display_name(self) -> str:
        """Name shown in notification texts."""
        if self.name:
            return self.name
        return "Admin" if self.is_admin else "Employee"


@runtime_checkable
class IdentityContext(Protocol):
    """Resolves the calling user for the current request."""

    async def current_actor(self) -> Actor | None:
        """Return the calling actor, or None when unauthenticated."""
        ...


class StaticIdentity:
    """Identity context bound to a pre-resolved actor (or to nobody)."""

    def __init__(self, actor: Actor | None) -> None:
        self._actor = actor

    async def current_actor(self) -> Actor | None:
        return self._actor
