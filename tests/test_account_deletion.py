"""
Account deletion tests.

Verifies that:
- Organizations the user owns alone are deleted with their billing canceled
- Owning a team with other active members blocks deletion
- The user's seat is released in organizations they only belong to
"""

import pytest
from sqlalchemy import func, select

from teamseats.core.exceptions import AccountDeletionBlockedError
from teamseats.models import Membership, Organization, StripeSubscription, User
from teamseats.models.membership import OrgRole
from teamseats.services.account_service import AccountService


@pytest.mark.asyncio
async def test_sole_owner_organization_is_deleted(make, db, billing):
    owner = await make.user()
    org = await make.organization(owner, stripe_customer_id="cus_123")
    await make.subscription(org, max_seats=5)
    await make.invite_link(org, owner)
    await make.email_invite(org, owner, "pending@example.com")
    gone = await make.user()
    await make.membership(gone, org, deactivated=True)
    org_id, owner_id = org.id, owner.id

    plan = await AccountService(db, billing).delete_account(owner)

    assert [o.id for o, _ in plan.organizations_to_delete] == [org_id]
    assert billing.deactivated_customers == ["cus_123"]
    assert billing.calls == []
    assert await db.scalar(select(func.count()).select_from(Organization).where(Organization.id == org_id)) == 0
    assert await db.scalar(
        select(func.count()).select_from(StripeSubscription).where(StripeSubscription.organization_id == org_id)
    ) == 0
    assert await db.scalar(select(func.count()).select_from(User).where(User.id == owner_id)) == 0


@pytest.mark.asyncio
async def test_owner_of_a_team_is_blocked(make, db, billing):
    owner = await make.user()
    team = await make.organization(owner, slug="busy-team")
    await make.members(team, 1)
    solo = await make.organization(owner, slug="solo-space")

    with pytest.raises(AccountDeletionBlockedError) as exc_info:
        await AccountService(db, billing).delete_account(owner)

    assert exc_info.value.organization_slugs == ["busy-team"]
    assert exc_info.value.to_detail()["organizations"] == ["busy-team"]
    assert await db.get(Organization, solo.id) is not None
    assert await db.get(User, owner.id) is not None
    assert billing.deactivated_customers == []


@pytest.mark.asyncio
async def test_seat_released_where_user_is_a_member(make, db, billing):
    owner = await make.user()
    org = await make.organization(owner)
    subscription = await make.subscription(org, max_seats=10)
    await make.members(org, 2)
    leaving = await make.user()
    await make.membership(leaving, org, OrgRole.admin)
    org_id, leaving_id = org.id, leaving.id

    plan = await AccountService(db, billing).delete_account(leaving)

    assert plan.organizations_to_delete == []
    assert billing.calls == [(subscription.stripe_id, subscription.items[0].stripe_id, 3)]
    remaining = await db.scalar(
        select(func.count()).select_from(Membership).where(Membership.organization_id == org_id)
    )
    assert remaining == 3
    assert await db.scalar(select(func.count()).select_from(User).where(User.id == leaving_id)) == 0


@pytest.mark.asyncio
async def test_deactivated_membership_releases_nothing(make, db, billing):
    owner = await make.user()
    org = await make.organization(owner)
    await make.subscription(org, max_seats=10)
    leaving = await make.user()
    await make.membership(leaving, org, deactivated=True)

    plan = await AccountService(db, billing).delete_account(leaving)

    assert plan.seats_to_release == []
    assert billing.calls == []
