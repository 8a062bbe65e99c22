"""
Organization ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from teamseats.models.billing import StripeSubscription
    from teamseats.models.email_invite import EmailInvite
    from teamseats.models.invite_link import InviteLink
    from teamseats.models.membership import Membership
    from teamseats.models.notification import Notification, NotificationPanel


class Organization(Base, UUIDMixin, TimestampMixin):
    """Represents a tenant organization."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    billing_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trial_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    memberships: Mapped[list[Membership]] = relationship(
        "Membership", back_populates="organization", cascade="all, delete-orphan"
    )
    invite_links: Mapped[list[InviteLink]] = relationship(
        "InviteLink", back_populates="organization", cascade="all, delete-orphan"
    )
    email_invites: Mapped[list[EmailInvite]] = relationship(
        "EmailInvite", back_populates="organization", cascade="all, delete-orphan"
    )
    subscriptions: Mapped[list[StripeSubscription]] = relationship(
        "StripeSubscription",
        back_populates="organization",
        cascade="all, delete-orphan",
        order_by="StripeSubscription.created.desc()",
    )
    notifications: Mapped[list[Notification]] = relationship(
        "Notification", back_populates="organization", cascade="all, delete-orphan"
    )
    notification_panels: Mapped[list[NotificationPanel]] = relationship(
        "NotificationPanel", back_populates="organization", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"
