"""
Organization business logic.

Handles organization creation, detail with seat usage, settings updates
and deletion.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.config import settings
from teamseats.core.exceptions import BillingCustomerMissingError, ForbiddenError, SlugTakenError
from teamseats.models.base import now_utc
from teamseats.models.membership import Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.schemas.organization import (
    OrganizationCreateRequest,
    OrganizationDetailResponse,
    OrganizationResponse,
    OrganizationUpdateRequest,
    SeatUsage,
)
from teamseats.services.billing_service import BillingGateway
from teamseats.services.capacity import load_seat_snapshot
from teamseats.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    """Lowercase ASCII slug: accents stripped, runs of other characters become one hyphen."""
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "-", ascii_value.lower()).strip("-")[:50].strip("-")


class OrganizationService:
    """Handles all organization operations."""

    def __init__(self, db: AsyncSession, billing: BillingGateway) -> None:
        self.db = db
        self.billing = billing

    # -----------------------------------------------------------------------
    # Create Organization
    # -----------------------------------------------------------------------

    async def create_organization(
        self, data: OrganizationCreateRequest, owner: User
    ) -> Organization:
        """
        Create a new organization.

        - Validates slug uniqueness
        - Creates organization record with a trial window
        - Assigns creator as Owner
        - Creates the owner's notification panel
        """
        existing = await self.db.execute(
            select(Organization.id).where(Organization.slug == data.slug)
        )
        if existing.scalar_one_or_none() is not None:
            raise SlugTakenError("Organization slug is already taken")

        org = Organization(
            name=data.name,
            slug=data.slug,
            billing_email=owner.email,
            trial_end=now_utc() + timedelta(days=settings.TRIAL_PERIOD_DAYS),
        )
        self.db.add(org)
        await self.db.flush()

        self.db.add(Membership(user_id=owner.id, organization_id=org.id, role=OrgRole.owner))
        await self.db.flush()
        await NotificationService(self.db).ensure_panel(owner.id, org.id)

        logger.info("Organization %s created by user %s", org.slug, owner.id)
        return org

    # -----------------------------------------------------------------------
    # Get Organization
    # -----------------------------------------------------------------------

    async def get_organization_detail(
        self, org: Organization, member: Membership
    ) -> OrganizationDetailResponse:
        snapshot = await load_seat_snapshot(self.db, org.id)
        return OrganizationDetailResponse(
            organization=OrganizationResponse.model_validate(org),
            role=member.role,
            seats=SeatUsage(
                active_members=snapshot.active_member_count,
                max_seats=snapshot.max_seats,
                is_full=snapshot.is_full,
            ),
        )

    # -----------------------------------------------------------------------
    # Update Organization
    # -----------------------------------------------------------------------

    async def update_organization(
        self, org: Organization, member: Membership, data: OrganizationUpdateRequest
    ) -> Organization:
        """
        Rename an organization or change its image.

        - Only owners may update the general settings
        - A new name also moves the organization to the slug derived from it
        - The Stripe customer name follows the organization name
        """
        if member.role != OrgRole.owner:
            raise ForbiddenError("Only owners can update the organization")

        renamed = data.name is not None and data.name != org.name
        if renamed:
            new_slug = slugify(data.name)
            if new_slug and new_slug != org.slug:
                taken = await self.db.scalar(
                    select(Organization.id).where(
                        Organization.slug == new_slug, Organization.id != org.id
                    )
                )
                if taken is not None:
                    raise SlugTakenError("Organization slug is already taken")
                org.slug = new_slug
            org.name = data.name
        if data.image_url is not None:
            org.image_url = str(data.image_url)
        await self.db.flush()

        if renamed and org.stripe_customer_id:
            await self.billing.update_customer(org.stripe_customer_id, name=org.name)
        logger.info("Organization %s updated", org.slug)
        return org

    async def update_billing_email(
        self, org: Organization, billing_email: str
    ) -> Organization:
        """Change the billing email locally and on the Stripe customer."""
        if not org.stripe_customer_id:
            raise BillingCustomerMissingError()
        if billing_email == org.billing_email:
            return org

        await self.billing.update_customer(
            org.stripe_customer_id, name=org.name, email=billing_email
        )
        org.billing_email = billing_email
        await self.db.flush()
        logger.info("Billing email of organization %s updated", org.slug)
        return org

    # -----------------------------------------------------------------------
    # Delete Organization
    # -----------------------------------------------------------------------

    async def delete_organization(self, org: Organization, member: Membership) -> None:
        """
        Delete an organization and everything it owns.

        Only owners may delete. Active Stripe subscriptions of the
        organization's customer are canceled first.
        """
        if member.role != OrgRole.owner:
            raise ForbiddenError("Only owners can delete the organization")

        if org.stripe_customer_id:
            await self.billing.deactivate_customer(org.stripe_customer_id)

        slug = org.slug
        await self.db.delete(org)
        await self.db.flush()
        logger.info("Organization %s deleted", slug)
