"""
Email invite ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, UUIDMixin, now_utc
from teamseats.models.membership import OrgRole

if TYPE_CHECKING:
    from teamseats.models.organization import Organization
    from teamseats.models.user import User


class EmailInvite(Base, UUIDMixin):
    """Single-use invitation addressed to an email with a preset role."""

    __tablename__ = "email_invites"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invited_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[OrgRole] = mapped_column(Enum(OrgRole, name="org_role"), nullable=False)
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
        "Organization", back_populates="email_invites"
    )
    invited_by: Mapped[User | None] = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<EmailInvite id={self.id} email={self.email!r} "
            f"organization_id={self.organization_id}>"
        )
