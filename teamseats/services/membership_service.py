"""
Membership role and status transitions.

Authorizes role changes, deactivation and reactivation of memberships and
keeps the billed seat count consistent with the number of active members.
"""

from __future__ import annotations

import logging
from typing import Literal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.exceptions import ForbiddenError, OrganizationFullError, TargetNotFoundError
from teamseats.models.base import now_utc
from teamseats.models.membership import Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.repositories.memberships import get_membership, list_memberships_with_users
from teamseats.schemas.organization import (
    InviteLinkInfo,
    TeamMemberResponse,
    TeamMembersResponse,
)
from teamseats.services.billing_service import BillingGateway
from teamseats.services.capacity import load_seat_snapshot
from teamseats.services.invitation_service import InvitationService

logger = logging.getLogger(__name__)

RequestedRole = Literal["member", "admin", "owner", "deactivated"]


class MembershipService:
    """Handles team member listing and role/status transitions."""

    def __init__(
        self,
        db: AsyncSession,
        billing: BillingGateway,
        invitations: InvitationService | None = None,
    ) -> None:
        self.db = db
        self.billing = billing
        self.invitations = invitations or InvitationService(db)

    # -----------------------------------------------------------------------
    # Role / status transition
    # -----------------------------------------------------------------------

    async def change_member_role(
        self,
        organization_id: UUID,
        acting_user_id: UUID,
        acting_role: OrgRole,
        target_user_id: UUID,
        requested: RequestedRole,
    ) -> Membership:
        """
        Apply a role change, deactivation or reactivation.

        Authorization, in order:
        - Nobody may change their own membership
        - Members may not change anyone
        - The target must have a membership in the organization
        - Admins may not touch owners or grant the owner role

        Raises:
            ForbiddenError, TargetNotFoundError: Nothing is changed.
            OrganizationFullError: Reactivation with no free seat; the
                membership stays deactivated.
        """
        if acting_user_id == target_user_id:
            raise ForbiddenError("You cannot change your own role or status")

        if acting_role == OrgRole.member:
            raise ForbiddenError("Only owners and admins can change team members")

        target = await get_membership(self.db, organization_id, target_user_id)
        if target is None:
            raise TargetNotFoundError("Team member not found")

        if acting_role == OrgRole.admin:
            if target.role == OrgRole.owner:
                raise ForbiddenError("Admins cannot change an owner")
            if requested == OrgRole.owner.value:
                raise ForbiddenError("Admins cannot grant the owner role")

        if requested == "deactivated":
            await self._deactivate(target)
        elif target.deactivated_at is not None:
            await self._reactivate(target, OrgRole(requested))
        else:
            target.role = OrgRole(requested)
            await self.db.flush()
            logger.info(
                "User %s set role of %s to %s in organization %s",
                acting_user_id,
                target_user_id,
                requested,
                organization_id,
            )
        return target

    async def _deactivate(self, target: Membership) -> None:
        if target.deactivated_at is not None:
            return

        snapshot = await load_seat_snapshot(self.db, target.organization_id, lock=True)
        target.deactivated_at = now_utc()
        await self.db.flush()

        subscription = snapshot.billable_subscription
        if subscription is not None:
            await self.billing.adjust_seats(
                subscription.stripe_id,
                subscription.item_stripe_id,
                snapshot.active_member_count - 1,
            )
        logger.info(
            "Deactivated user %s in organization %s", target.user_id, target.organization_id
        )

    async def _reactivate(self, target: Membership, role: OrgRole) -> None:
        snapshot = await load_seat_snapshot(self.db, target.organization_id, lock=True)
        if snapshot.is_full:
            logger.info(
                "Reactivation refused: organization %s is full (%d/%d seats)",
                target.organization_id,
                snapshot.active_member_count,
                snapshot.max_seats,
            )
            raise OrganizationFullError()

        target.role = role
        target.deactivated_at = None
        await self.db.flush()

        subscription = snapshot.billable_subscription
        if subscription is not None:
            await self.billing.adjust_seats(
                subscription.stripe_id,
                subscription.item_stripe_id,
                snapshot.active_member_count + 1,
            )
        logger.info(
            "Reactivated user %s as %s in organization %s",
            target.user_id,
            role.value,
            target.organization_id,
        )

    # -----------------------------------------------------------------------
    # Team members view
    # -----------------------------------------------------------------------

    async def list_team_members(
        self, organization: Organization, current_user: User, current_role: OrgRole
    ) -> TeamMembersResponse:
        """Pending email invites first, then every membership of the organization."""
        snapshot = await load_seat_snapshot(self.db, organization.id)
        pending = await self.invitations.list_pending_email_invites(organization.id)
        link = await self.invitations.get_active_invite_link(
            organization, organization_is_full=snapshot.is_full
        )

        members = [
            TeamMemberResponse(
                id=invite.id,
                email=invite.email,
                name="",
                role=invite.role,
                status="email_invite_pending",
            )
            for invite in pending
        ]
        for membership, user in await list_memberships_with_users(self.db, organization.id):
            is_current_user = user.id == current_user.id
            members.append(
                TeamMemberResponse(
                    id=user.id,
                    email=user.email,
                    name=user.name,
                    image_url=user.image_url,
                    role=membership.role,
                    deactivated_at=membership.deactivated_at,
                    is_current_user=is_current_user,
                    status="created_the_organization" if is_current_user else "joined_via_link",
                )
            )

        return TeamMembersResponse(
            members=members,
            organization_is_full=snapshot.is_full,
            current_user_is_owner=current_role == OrgRole.owner,
            invite_link=(
                InviteLinkInfo(token=link.token, expires_at=link.expires_at) if link else None
            ),
        )
