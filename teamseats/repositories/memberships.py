"""
Membership repository functions.

Database access for memberships shared by the admission, transition,
organization and account services.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.exceptions import DuplicateKeyError
from teamseats.models.membership import MEMBERSHIP_UNIQUE_CONSTRAINT, Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User


def _violated_constraint(exc: IntegrityError) -> str | None:
    """Constraint name reported by the driver (asyncpg exposes it, SQLite does not)."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    return None


async def add_membership(
    db: AsyncSession, user_id: UUID, organization_id: UUID, role: OrgRole
) -> Membership:
    """
    Insert a membership row inside a savepoint.

    Only the savepoint is rolled back on failure, so the caller's
    transaction and earlier writes stay intact.

    Raises:
        DuplicateKeyError: If the user already has a membership in the
            organization.
        IntegrityError: For any other constraint violation.
    """
    membership = Membership(user_id=user_id, organization_id=organization_id, role=role)
    try:
        async with db.begin_nested():
            db.add(membership)
            await db.flush()
    except IntegrityError as exc:
        constraint = _violated_constraint(exc)
        if constraint is None and await get_membership(db, organization_id, user_id) is not None:
            # SQLite does not report constraint names.
            constraint = MEMBERSHIP_UNIQUE_CONSTRAINT
        if constraint is None:
            raise
        raise DuplicateKeyError(constraint) from exc
    return membership


async def get_membership(
    db: AsyncSession, organization_id: UUID, user_id: UUID
) -> Membership | None:
    result = await db.execute(
        select(Membership).where(
            Membership.organization_id == organization_id,
            Membership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def list_memberships_with_users(
    db: AsyncSession, organization_id: UUID
) -> list[tuple[Membership, User]]:
    """All memberships of an organization, active and deactivated, oldest first."""
    result = await db.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.organization_id == organization_id)
        .order_by(Membership.created_at)
    )
    return [(membership, user) for membership, user in result.all()]


async def list_active_user_ids(
    db: AsyncSession, organization_id: UUID, roles: tuple[OrgRole, ...]
) -> list[UUID]:
    result = await db.execute(
        select(Membership.user_id).where(
            Membership.organization_id == organization_id,
            Membership.deactivated_at.is_(None),
            Membership.role.in_(roles),
        )
    )
    return list(result.scalars().all())


async def active_member_emails(db: AsyncSession, organization_id: UUID) -> set[str]:
    result = await db.execute(
        select(User.email)
        .join(Membership, Membership.user_id == User.id)
        .where(
            Membership.organization_id == organization_id,
            Membership.deactivated_at.is_(None),
        )
    )
    return {email.lower() for email in result.scalars().all()}


async def list_active_memberships_for_user(
    db: AsyncSession, user_id: UUID
) -> list[tuple[Membership, Organization]]:
    result = await db.execute(
        select(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .where(Membership.user_id == user_id, Membership.deactivated_at.is_(None))
        .order_by(Organization.created_at)
    )
    return [(membership, organization) for membership, organization in result.all()]
