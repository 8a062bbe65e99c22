"""
Account settings and deletion.

Deleting a user runs as explicit steps so each one can be observed on its own:
plan (and refuse if the user still owns a team), delete organizations the
user owns alone, release the user's seat everywhere else, delete the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.exceptions import AccountDeletionBlockedError
from teamseats.models.membership import Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.repositories.memberships import list_active_memberships_for_user
from teamseats.schemas.account import AccountUpdateRequest
from teamseats.services.billing_service import BillingGateway
from teamseats.services.capacity import SeatSnapshot, load_seat_snapshot
from teamseats.services.organization_service import OrganizationService

logger = logging.getLogger(__name__)


@dataclass
class AccountDeletionPlan:
    organizations_to_delete: list[tuple[Organization, Membership]] = field(default_factory=list)
    seats_to_release: list[tuple[Organization, SeatSnapshot]] = field(default_factory=list)


class AccountService:
    def __init__(self, db: AsyncSession, billing: BillingGateway) -> None:
        self.db = db
        self.billing = billing

    async def update_account(self, user: User, data: AccountUpdateRequest) -> User:
        if data.name is not None:
            user.name = data.name
        if data.image_url is not None:
            user.image_url = str(data.image_url)
        await self.db.flush()
        logger.info("User account %s updated", user.id)
        return user

    async def plan_account_deletion(self, user: User) -> AccountDeletionPlan:
        """
        Work out what deleting the user's account touches.

        Raises:
            AccountDeletionBlockedError: The user owns organizations that still
                have other active members.
        """
        plan = AccountDeletionPlan()
        blocking: list[str] = []

        for membership, organization in await list_active_memberships_for_user(self.db, user.id):
            snapshot = await load_seat_snapshot(self.db, organization.id)
            if membership.role == OrgRole.owner:
                if snapshot.active_member_count > 1:
                    blocking.append(organization.slug)
                else:
                    plan.organizations_to_delete.append((organization, membership))
            else:
                plan.seats_to_release.append((organization, snapshot))

        if blocking:
            raise AccountDeletionBlockedError(blocking)
        return plan

    async def delete_sole_owner_organizations(self, plan: AccountDeletionPlan) -> None:
        organizations = OrganizationService(self.db, self.billing)
        for organization, membership in plan.organizations_to_delete:
            await organizations.delete_organization(organization, membership)

    async def release_seats(self, plan: AccountDeletionPlan) -> None:
        for organization, snapshot in plan.seats_to_release:
            subscription = snapshot.billable_subscription
            if subscription is None:
                continue
            await self.billing.adjust_seats(
                subscription.stripe_id,
                subscription.item_stripe_id,
                snapshot.active_member_count - 1,
            )
            logger.info("Released one seat in organization %s", organization.slug)

    async def delete_user(self, user: User) -> None:
        user_id = user.id
        await self.db.delete(user)
        await self.db.flush()
        logger.info("User account %s deleted", user_id)

    async def delete_account(self, user: User) -> AccountDeletionPlan:
        plan = await self.plan_account_deletion(user)
        await self.delete_sole_owner_organizations(plan)
        await self.release_seats(plan)
        await self.delete_user(user)
        return plan
