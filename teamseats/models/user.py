"""
User ORM model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from teamseats.models.invite_link import InviteLinkUse
    from teamseats.models.membership import Membership
    from teamseats.models.notification import NotificationPanel, NotificationRecipient


class User(Base, UUIDMixin, TimestampMixin):
    """Represents an account resolved by the external auth provider."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    memberships: Mapped[list[Membership]] = relationship(
        "Membership", back_populates="user", cascade="all, delete-orphan"
    )
    invite_link_uses: Mapped[list[InviteLinkUse]] = relationship(
        "InviteLinkUse", back_populates="user", cascade="all, delete-orphan"
    )
    notification_recipients: Mapped[list[NotificationRecipient]] = relationship(
        "NotificationRecipient", back_populates="user", cascade="all, delete-orphan"
    )
    notification_panels: Mapped[list[NotificationPanel]] = relationship(
        "NotificationPanel", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
