"""In-app notification model."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_workflow.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hr_workflow.models.employee import User


class Notification(Base, TimestampMixin):
    """Notification addressed to a single user."""

    __tablename__ = "notification"

    notification_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    recipient_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, default="GENERAL")
    link: Mapped[str] = mapped_column(String, nullable=False, default="/dashboard")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('TASK_ASSIGNMENT', 'TASK_UPDATE', 'STATUS_CHANGE', 'GENERAL')",
            name="notification_type_check",
        ),
        Index("ix_notification_recipient_id", "recipient_id"),
    )

    # Relationships
    recipient: Mapped[User] = relationship(back_populates="notifications")
