"""
Invite admission rule.

Admits a user into an organization through an invite link or an email
invite. When the organization has a billable subscription, capacity is
re-checked against fresh data before any mutation; a refused admission
leaves memberships, invite uses and the billed seat count untouched.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.exceptions import AlreadyMemberError, DuplicateKeyError, OrganizationFullError
from teamseats.models.base import now_utc
from teamseats.models.email_invite import EmailInvite
from teamseats.models.invite_link import InviteLinkUse
from teamseats.models.membership import MEMBERSHIP_UNIQUE_CONSTRAINT, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.repositories.memberships import add_membership, list_active_user_ids
from teamseats.schemas.invitation import AcceptInviteResponse
from teamseats.schemas.notification import LinkNotificationContent
from teamseats.services.billing_service import BillingGateway
from teamseats.services.capacity import SeatSnapshot, load_seat_snapshot
from teamseats.services.invitation_service import InvitationService
from teamseats.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def invite_link_page(token: str) -> str:
    return f"/organizations/invite-link?token={token}"


def email_invite_page(token: str) -> str:
    return f"/organizations/email-invite?token={token}"


class AdmissionService:
    """Admits new members and keeps the billed seat count in step."""

    def __init__(
        self,
        db: AsyncSession,
        billing: BillingGateway,
        invitations: InvitationService | None = None,
    ) -> None:
        self.db = db
        self.billing = billing
        self.invitations = invitations or InvitationService(db)
        self.notifications = NotificationService(db)

    # -----------------------------------------------------------------------
    # Admission via invite link
    # -----------------------------------------------------------------------

    async def admit_via_invite_link(
        self,
        user_id: UUID,
        organization_id: UUID,
        invite_link_id: UUID,
        invite_link_token: str,
    ) -> None:
        """
        Add a user as member through an invite link.

        Raises:
            OrganizationFullError: No seat is free. Nothing is written and the
                link stays valid.
            AlreadyMemberError: The user already has a membership.
        """
        snapshot = await self._check_capacity(organization_id, invite_link_page(invite_link_token))

        await self._create_membership(user_id, organization_id, OrgRole.member)
        self.db.add(InviteLinkUse(invite_link_id=invite_link_id, user_id=user_id))
        await self.db.flush()

        await self._after_admission(user_id, organization_id, snapshot)

    # -----------------------------------------------------------------------
    # Admission via email invite
    # -----------------------------------------------------------------------

    async def admit_via_email_invite(
        self,
        user_id: UUID,
        organization_id: UUID,
        email_invite_id: UUID,
        email_invite_token: str,
        role: OrgRole,
    ) -> None:
        """
        Add a user with the invite's role and consume the email invite.

        Raises:
            OrganizationFullError: No seat is free. Nothing is written and the
                invite stays pending.
            AlreadyMemberError: The user already has a membership.
        """
        snapshot = await self._check_capacity(
            organization_id, email_invite_page(email_invite_token)
        )

        await self._create_membership(user_id, organization_id, role)
        await self._deactivate_email_invite(email_invite_id)

        await self._after_admission(user_id, organization_id, snapshot)

    # -----------------------------------------------------------------------
    # Token entry points
    # -----------------------------------------------------------------------

    async def accept_invite_link(self, token: str, user: User) -> AcceptInviteResponse:
        resolved = await self.invitations.resolve_invite_link(token)
        organization = resolved.organization
        response = AcceptInviteResponse(
            status="joined",
            organization_id=organization.id,
            organization_slug=organization.slug,
            organization_name=organization.name,
        )

        try:
            await self.admit_via_invite_link(
                user.id, organization.id, resolved.invite.id, resolved.invite.token
            )
        except AlreadyMemberError:
            return response.model_copy(update={"status": "already_member"})
        return response

    async def accept_email_invite(self, token: str, user: User) -> AcceptInviteResponse:
        resolved = await self.invitations.resolve_email_invite(token)
        organization = resolved.organization
        invite_id = resolved.invite.id
        response = AcceptInviteResponse(
            status="joined",
            organization_id=organization.id,
            organization_slug=organization.slug,
            organization_name=organization.name,
        )

        try:
            await self.admit_via_email_invite(
                user.id, organization.id, invite_id, resolved.invite.token, resolved.invite.role
            )
        except AlreadyMemberError:
            # Retire the invite so it stops showing as pending.
            await self._deactivate_email_invite(invite_id)
            return response.model_copy(update={"status": "already_member"})
        return response

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _check_capacity(self, organization_id: UUID, redirect_to: str) -> SeatSnapshot:
        snapshot = await load_seat_snapshot(self.db, organization_id, lock=True)
        # Trials and canceled plans are not capped.
        if snapshot.billable_subscription is not None and snapshot.is_full:
            logger.info(
                "Admission refused: organization %s is full (%d/%d seats)",
                organization_id,
                snapshot.active_member_count,
                snapshot.max_seats,
            )
            raise OrganizationFullError(redirect_to=redirect_to)
        return snapshot

    async def _create_membership(self, user_id: UUID, organization_id: UUID, role: OrgRole) -> None:
        try:
            await add_membership(self.db, user_id, organization_id, role)
        except DuplicateKeyError as exc:
            if exc.constraint != MEMBERSHIP_UNIQUE_CONSTRAINT:
                raise
            raise AlreadyMemberError("You are already a member of this organization") from exc

    async def _deactivate_email_invite(self, email_invite_id: UUID) -> None:
        await self.db.execute(
            update(EmailInvite)
            .where(EmailInvite.id == email_invite_id, EmailInvite.deactivated_at.is_(None))
            .values(deactivated_at=now_utc())
            .execution_options(synchronize_session="fetch")
        )

    async def _after_admission(
        self, user_id: UUID, organization_id: UUID, snapshot: SeatSnapshot
    ) -> None:
        """Panel, notifications and seat update for a freshly admitted member."""
        await self.notifications.ensure_panel(user_id, organization_id)

        new_member = await self.db.get(User, user_id)
        organization = await self.db.get(Organization, organization_id)
        recipients = [
            uid
            for uid in await list_active_user_ids(
                self.db, organization_id, (OrgRole.owner, OrgRole.admin)
            )
            if uid != user_id
        ]
        await self.notifications.create_for_users(
            organization_id,
            recipients,
            LinkNotificationContent(
                text=f"{new_member.name or new_member.email} joined {organization.name}",
                href=f"/organizations/{organization.slug}/settings/members",
            ),
        )

        new_count = snapshot.active_member_count + 1
        subscription = snapshot.billable_subscription
        if subscription is not None:
            await self.billing.adjust_seats(
                subscription.stripe_id, subscription.item_stripe_id, new_count
            )
        logger.info(
            "User %s admitted to organization %s (%d active members)",
            user_id,
            organization_id,
            new_count,
        )
