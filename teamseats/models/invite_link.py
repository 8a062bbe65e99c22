"""
Invite link ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, UUIDMixin, now_utc

if TYPE_CHECKING:
    from teamseats.models.organization import Organization
    from teamseats.models.user import User

INVITE_LINK_USE_UNIQUE_CONSTRAINT = "uq_invite_link_uses_link_user"


class InviteLink(Base, UUIDMixin):
    """Shareable, organization-scoped token that admits new members."""

    __tablename__ = "invite_links"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="invite_links"
    )
    creator: Mapped[User | None] = relationship("User")
    uses: Mapped[list[InviteLinkUse]] = relationship(
        "InviteLinkUse", back_populates="invite_link", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<InviteLink id={self.id} organization_id={self.organization_id}>"


class InviteLinkUse(Base, UUIDMixin):
    """Records that a user joined through an invite link."""

    __tablename__ = "invite_link_uses"
    __table_args__ = (
        UniqueConstraint("invite_link_id", "user_id", name=INVITE_LINK_USE_UNIQUE_CONSTRAINT),
    )

    invite_link_id: Mapped[UUID] = mapped_column(
        ForeignKey("invite_links.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )

    # Relationships
    invite_link: Mapped[InviteLink] = relationship("InviteLink", back_populates="uses")
    user: Mapped[User] = relationship("User", back_populates="invite_link_uses")
