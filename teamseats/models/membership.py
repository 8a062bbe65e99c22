"""
Membership ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, UUIDMixin, now_utc

if TYPE_CHECKING:
    from teamseats.models.organization import Organization
    from teamseats.models.user import User

MEMBERSHIP_UNIQUE_CONSTRAINT = "uq_memberships_user_organization"


class OrgRole(str, enum.Enum):
    """Organization member role enumeration."""

    owner = "owner"
    admin = "admin"
    member = "member"


class Membership(Base, UUIDMixin):
    """
    Join table linking users to organizations with a role.

    A null deactivated_at means the membership is active. Memberships are
    deactivated instead of deleted.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name=MEMBERSHIP_UNIQUE_CONSTRAINT),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[OrgRole] = mapped_column(Enum(OrgRole, name="org_role"), nullable=False)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="memberships")
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="memberships"
    )

    @property
    def is_deactivated(self) -> bool:
        return self.deactivated_at is not None

    def __repr__(self) -> str:
        return (
            f"<Membership user_id={self.user_id} organization_id={self.organization_id} "
            f"role={self.role.value}>"
        )
