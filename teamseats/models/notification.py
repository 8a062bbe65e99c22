"""
ORM models for notifications, their recipients and per-user panels.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, UUIDMixin, now_utc

if TYPE_CHECKING:
    from teamseats.models.organization import Organization
    from teamseats.models.user import User


class Notification(Base, UUIDMixin):
    __tablename__ = "notifications"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False, index=True
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="notifications"
    )
    recipients: Mapped[list[NotificationRecipient]] = relationship(
        "NotificationRecipient", back_populates="notification", cascade="all, delete-orphan"
    )


class NotificationRecipient(Base, UUIDMixin):
    __tablename__ = "notification_recipients"

    notification_id: Mapped[UUID] = mapped_column(
        ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    notification: Mapped[Notification] = relationship(
        "Notification", back_populates="recipients"
    )
    user: Mapped[User] = relationship("User", back_populates="notification_recipients")


class NotificationPanel(Base, UUIDMixin):
    """Tracks when a user last opened the notification panel of an organization."""

    __tablename__ = "notification_panels"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_notification_panels_user_org"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    last_opened_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="notification_panels")
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="notification_panels"
    )
