"""
Invitation business logic.

Handles invite link rotation, email invites, pending invite resolution and
the lookups behind the public invite pages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.config import settings
from teamseats.core.exceptions import AlreadyMemberError, ForbiddenError, NotFoundError, OrganizationFullError
from teamseats.core.security import generate_invite_token
from teamseats.models.base import as_utc, now_utc
from teamseats.models.email_invite import EmailInvite
from teamseats.models.invite_link import InviteLink
from teamseats.models.membership import OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.repositories.memberships import active_member_emails
from teamseats.schemas.invitation import InviteInfoResponse
from teamseats.services.capacity import load_seat_snapshot

logger = logging.getLogger(__name__)

DEACTIVATED_USER_NAME = "Deactivated User"


def select_pending_email_invites(
    invites: Iterable[EmailInvite], member_emails: set[str]
) -> list[EmailInvite]:
    """
    Resolve which email invites are still pending.

    Newest first; only the most recent invite per email address is kept and
    invites addressed to an existing member are dropped.
    """
    member_emails = {email.lower() for email in member_emails}
    seen: set[str] = set()
    pending: list[EmailInvite] = []
    for invite in sorted(invites, key=lambda i: as_utc(i.created_at), reverse=True):
        email = invite.email.lower()
        if email in seen:
            continue
        seen.add(email)
        if email not in member_emails:
            pending.append(invite)
    return pending


@dataclass
class ResolvedInvite:
    """An active, unexpired invite together with its organization and inviter."""

    invite: InviteLink | EmailInvite
    organization: Organization
    inviter: User | None

    @property
    def inviter_name(self) -> str:
        if self.inviter is None:
            return DEACTIVATED_USER_NAME
        return self.inviter.name or self.inviter.email


class InvitationService:
    """Handles invite links and email invites of an organization."""

    def __init__(
        self,
        db: AsyncSession,
        enqueue_invitation_email: Callable[..., Any] | None = None,
    ) -> None:
        self.db = db
        if enqueue_invitation_email is None:
            from teamseats.workers.email_tasks import send_invitation_email

            enqueue_invitation_email = send_invitation_email.delay
        self.enqueue_invitation_email = enqueue_invitation_email

    # -----------------------------------------------------------------------
    # Invite links
    # -----------------------------------------------------------------------

    async def create_invite_link(self, organization: Organization, creator: User) -> InviteLink:
        """
        Replace the organization's active invite link with a fresh one.

        Raises OrganizationFullError when no seat is free.
        """
        snapshot = await load_seat_snapshot(self.db, organization.id)
        if snapshot.is_full:
            raise OrganizationFullError()

        await self._deactivate_active_links(organization.id)

        link = InviteLink(
            organization_id=organization.id,
            creator_id=creator.id,
            token=generate_invite_token(),
            expires_at=now_utc() + timedelta(days=settings.INVITE_LINK_EXPIRE_DAYS),
        )
        self.db.add(link)
        await self.db.flush()
        logger.info("Invite link %s created for organization %s", link.id, organization.slug)
        return link

    async def deactivate_invite_link(self, organization: Organization) -> int:
        """Deactivate the active invite link. Returns the number of links deactivated."""
        count = await self._deactivate_active_links(organization.id)
        logger.info("Deactivated %d invite link(s) for organization %s", count, organization.slug)
        return count

    async def get_active_invite_link(
        self, organization: Organization, organization_is_full: bool | None = None
    ) -> InviteLink | None:
        """Latest active, unexpired invite link. Hidden while the organization is full."""
        if organization_is_full is None:
            organization_is_full = (await load_seat_snapshot(self.db, organization.id)).is_full
        if organization_is_full:
            return None

        result = await self.db.execute(
            select(InviteLink)
            .where(
                InviteLink.organization_id == organization.id,
                InviteLink.deactivated_at.is_(None),
                InviteLink.expires_at > now_utc(),
            )
            .order_by(InviteLink.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _deactivate_active_links(self, organization_id: UUID) -> int:
        result = await self.db.execute(
            update(InviteLink)
            .where(
                InviteLink.organization_id == organization_id,
                InviteLink.deactivated_at.is_(None),
            )
            .values(deactivated_at=now_utc())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    # -----------------------------------------------------------------------
    # Email invites
    # -----------------------------------------------------------------------

    async def invite_by_email(
        self,
        organization: Organization,
        inviter: User,
        inviter_role: OrgRole,
        email: str,
        role: OrgRole,
    ) -> EmailInvite:
        """
        Create an email invite and queue the invitation email.

        - Rejects when the organization is full
        - Only owners may invite as owner
        - Rejects addresses that already belong to an active member
        """
        email = email.strip().lower()

        snapshot = await load_seat_snapshot(self.db, organization.id)
        if snapshot.is_full:
            raise OrganizationFullError()

        if role == OrgRole.owner and inviter_role != OrgRole.owner:
            raise ForbiddenError("Only owners can invite new owners")

        if email in await active_member_emails(self.db, organization.id):
            raise AlreadyMemberError(f"{email} is already a member of this organization", email=email)

        invite = EmailInvite(
            organization_id=organization.id,
            invited_by_id=inviter.id,
            email=email,
            role=role,
            token=generate_invite_token(),
            expires_at=now_utc() + timedelta(days=settings.EMAIL_INVITE_EXPIRE_DAYS),
        )
        self.db.add(invite)
        await self.db.flush()

        self.enqueue_invitation_email(
            to_email=email,
            org_name=organization.name,
            inviter_name=inviter.name or inviter.email,
            role=role.value,
            invitation_token=invite.token,
            frontend_url=settings.FRONTEND_URL,
        )
        logger.info("Email invite %s queued for organization %s", invite.id, organization.slug)
        return invite

    async def list_pending_email_invites(self, organization_id: UUID) -> list[EmailInvite]:
        result = await self.db.execute(
            select(EmailInvite).where(
                EmailInvite.organization_id == organization_id,
                EmailInvite.deactivated_at.is_(None),
                EmailInvite.expires_at > now_utc(),
            )
        )
        return select_pending_email_invites(
            result.scalars().all(), await active_member_emails(self.db, organization_id)
        )

    # -----------------------------------------------------------------------
    # Token lookups
    # -----------------------------------------------------------------------

    async def resolve_invite_link(self, token: str) -> ResolvedInvite:
        """Active, unexpired invite link by token. Raises NotFoundError otherwise."""
        row = (
            await self.db.execute(
                select(InviteLink, Organization, User)
                .join(Organization, Organization.id == InviteLink.organization_id)
                .outerjoin(User, User.id == InviteLink.creator_id)
                .where(
                    InviteLink.token == token,
                    InviteLink.deactivated_at.is_(None),
                    InviteLink.expires_at > now_utc(),
                )
            )
        ).one_or_none()
        if row is None:
            raise NotFoundError("Invite link is invalid or has expired")
        return ResolvedInvite(*row)

    async def resolve_email_invite(self, token: str) -> ResolvedInvite:
        """Active, unexpired email invite by token. Raises NotFoundError otherwise."""
        row = (
            await self.db.execute(
                select(EmailInvite, Organization, User)
                .join(Organization, Organization.id == EmailInvite.organization_id)
                .outerjoin(User, User.id == EmailInvite.invited_by_id)
                .where(
                    EmailInvite.token == token,
                    EmailInvite.deactivated_at.is_(None),
                    EmailInvite.expires_at > now_utc(),
                )
            )
        ).one_or_none()
        if row is None:
            raise NotFoundError("Email invite is invalid or has expired")
        return ResolvedInvite(*row)

    async def invite_link_info(self, token: str) -> tuple[ResolvedInvite, InviteInfoResponse]:
        resolved = await self.resolve_invite_link(token)
        return resolved, InviteInfoResponse(
            organization_name=resolved.organization.name,
            inviter_name=resolved.inviter_name,
            role=OrgRole.member,
            expires_at=resolved.invite.expires_at,
        )

    async def email_invite_info(self, token: str) -> tuple[ResolvedInvite, InviteInfoResponse]:
        resolved = await self.resolve_email_invite(token)
        return resolved, InviteInfoResponse(
            organization_name=resolved.organization.name,
            inviter_name=resolved.inviter_name,
            role=resolved.invite.role,
            expires_at=resolved.invite.expires_at,
        )
