"""
Invitation tests.

Verifies that:
- Only the newest email invite per address is pending
- Invites addressed to active members are not pending
- Invite links rotate and are refused while the organization is full
- Email invites enforce capacity, the owner-only owner role and membership
- Expired or deactivated tokens are not resolvable
- The team members view lists pending invites before memberships
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from teamseats.core.exceptions import (
    AlreadyMemberError,
    ForbiddenError,
    NotFoundError,
    OrganizationFullError,
)
from teamseats.models import EmailInvite, InviteLink
from teamseats.models.base import now_utc
from teamseats.models.membership import OrgRole
from teamseats.services.invitation_service import InvitationService, select_pending_email_invites
from teamseats.services.membership_service import MembershipService


def invitations(db, enqueue) -> InvitationService:
    return InvitationService(db, enqueue_invitation_email=enqueue)


def invite(email: str, created_days_ago: int) -> EmailInvite:
    return EmailInvite(
        email=email,
        role=OrgRole.member,
        token=f"{email}-{created_days_ago}",
        created_at=now_utc() - timedelta(days=created_days_ago),
    )


# ---------------------------------------------------------------------------
# Pending email invite resolution
# ---------------------------------------------------------------------------

def test_newest_invite_per_email_wins():
    day_one = invite("a@example.com", created_days_ago=2)
    day_two = invite("a@example.com", created_days_ago=1)

    assert select_pending_email_invites([day_one, day_two], set()) == [day_two]
    assert select_pending_email_invites([day_two, day_one], set()) == [day_two]


def test_member_addresses_are_excluded():
    stale = invite("member@example.com", created_days_ago=3)
    fresh = invite("member@example.com", created_days_ago=1)
    other = invite("b@example.com", created_days_ago=2)

    assert select_pending_email_invites([stale, fresh, other], {"member@example.com"}) == [other]


def test_email_matching_is_case_insensitive():
    older = invite("A@Example.com", created_days_ago=2)
    newer = invite("a@example.com", created_days_ago=1)

    assert select_pending_email_invites([older, newer], set()) == [newer]
    assert select_pending_email_invites([newer], {"A@EXAMPLE.COM"}) == []


def test_pending_invites_newest_first():
    first = invite("a@example.com", created_days_ago=3)
    second = invite("b@example.com", created_days_ago=2)
    third = invite("c@example.com", created_days_ago=1)

    assert select_pending_email_invites([first, second, third], set()) == [third, second, first]


@pytest.mark.asyncio
async def test_list_pending_email_invites_from_database(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    await make.email_invite(org, owner, "a@example.com", created_offset=timedelta(days=-1))
    day_two = await make.email_invite(org, owner, "a@example.com")
    member = await make.user(email="member@example.com")
    await make.membership(member, org)
    await make.email_invite(org, owner, "member@example.com")
    await make.email_invite(org, owner, "expired@example.com", expires_in=timedelta(days=-1))

    pending = await invitations(db, enqueue).list_pending_email_invites(org.id)

    assert [p.id for p in pending] == [day_two.id]


# ---------------------------------------------------------------------------
# Invite links
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_invite_link_rotates_the_active_link(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    service = invitations(db, enqueue)

    first = await service.create_invite_link(org, owner)
    second = await service.create_invite_link(org, owner)

    assert first.token != second.token
    links = (
        await db.execute(select(InviteLink).where(InviteLink.organization_id == org.id))
    ).scalars().all()
    active = [link for link in links if link.deactivated_at is None]
    assert [link.id for link in active] == [second.id]
    assert (await service.get_active_invite_link(org)).id == second.id


@pytest.mark.asyncio
async def test_create_invite_link_refused_when_full(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    await make.subscription(org, max_seats=1)

    with pytest.raises(OrganizationFullError):
        await invitations(db, enqueue).create_invite_link(org, owner)


@pytest.mark.asyncio
async def test_active_invite_link_hidden_when_full(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    await make.invite_link(org, owner)
    await make.subscription(org, max_seats=1)

    assert await invitations(db, enqueue).get_active_invite_link(org) is None


@pytest.mark.asyncio
async def test_deactivate_invite_link(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    link = await make.invite_link(org, owner)
    service = invitations(db, enqueue)

    assert await service.deactivate_invite_link(org) == 1

    with pytest.raises(NotFoundError):
        await service.resolve_invite_link(link.token)


# ---------------------------------------------------------------------------
# Email invites
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invite_by_email_queues_the_email(make, db, enqueue):
    owner = await make.user(name="Olivia")
    org = await make.organization(owner, name="Acme")

    created = await invitations(db, enqueue).invite_by_email(
        org, owner, OrgRole.owner, " New.Person@Example.com ", OrgRole.admin
    )

    assert created.email == "new.person@example.com"
    assert created.role == OrgRole.admin
    assert len(enqueue.calls) == 1
    call = enqueue.calls[0]
    assert call["to_email"] == "new.person@example.com"
    assert call["org_name"] == "Acme"
    assert call["inviter_name"] == "Olivia"
    assert call["role"] == "admin"
    assert call["invitation_token"] == created.token


@pytest.mark.asyncio
async def test_invite_by_email_refused_when_full(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    await make.subscription(org, max_seats=1)

    with pytest.raises(OrganizationFullError):
        await invitations(db, enqueue).invite_by_email(
            org, owner, OrgRole.owner, "someone@example.com", OrgRole.member
        )
    assert enqueue.calls == []


@pytest.mark.asyncio
async def test_only_owners_invite_owners(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    admin = await make.user()
    await make.membership(admin, org, OrgRole.admin)

    with pytest.raises(ForbiddenError):
        await invitations(db, enqueue).invite_by_email(
            org, admin, OrgRole.admin, "boss@example.com", OrgRole.owner
        )
    assert enqueue.calls == []


@pytest.mark.asyncio
async def test_inviting_a_member_names_the_email(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    member = await make.user(email="taken@example.com")
    await make.membership(member, org)

    with pytest.raises(AlreadyMemberError) as exc_info:
        await invitations(db, enqueue).invite_by_email(
            org, owner, OrgRole.owner, "Taken@example.com", OrgRole.member
        )

    assert exc_info.value.to_detail()["email"] == "taken@example.com"
    assert "taken@example.com" in exc_info.value.message
    assert enqueue.calls == []


@pytest.mark.asyncio
async def test_deactivated_member_can_be_invited_again(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    gone = await make.user(email="gone@example.com")
    await make.membership(gone, org, deactivated=True)

    created = await invitations(db, enqueue).invite_by_email(
        org, owner, OrgRole.owner, "gone@example.com", OrgRole.member
    )

    assert created.email == "gone@example.com"


# ---------------------------------------------------------------------------
# Token lookups
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_expired_invite_link_is_not_found(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner)
    link = await make.invite_link(org, owner, expires_in=timedelta(minutes=-1))

    with pytest.raises(NotFoundError):
        await invitations(db, enqueue).resolve_invite_link(link.token)


@pytest.mark.asyncio
async def test_unknown_email_invite_is_not_found(db, enqueue):
    with pytest.raises(NotFoundError):
        await invitations(db, enqueue).resolve_email_invite("no-such-token")


@pytest.mark.asyncio
async def test_email_invite_info(make, db, enqueue):
    owner = await make.user(name="Olivia")
    org = await make.organization(owner, name="Acme")
    created = await make.email_invite(org, owner, "x@example.com", role=OrgRole.admin)

    resolved, info = await invitations(db, enqueue).email_invite_info(created.token)

    assert resolved.invite.id == created.id
    assert info.organization_name == "Acme"
    assert info.inviter_name == "Olivia"
    assert info.role == OrgRole.admin


@pytest.mark.asyncio
async def test_invite_link_from_deleted_creator(make, db, enqueue):
    owner = await make.user()
    org = await make.organization(owner, name="Acme")
    link = await make.invite_link(org, None)

    _, info = await invitations(db, enqueue).invite_link_info(link.token)

    assert info.inviter_name == "Deactivated User"
    assert info.role == OrgRole.member


# ---------------------------------------------------------------------------
# Team members view
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_team_members_lists_pending_invites_first(make, db, billing, enqueue):
    owner = await make.user(email="owner@example.com")
    org = await make.organization(owner)
    member = await make.user(email="member@example.com")
    await make.membership(member, org)
    await make.email_invite(org, owner, "pending@example.com")
    await make.email_invite(org, owner, "member@example.com")
    link = await make.invite_link(org, owner)

    view = await MembershipService(db, billing, invitations(db, enqueue)).list_team_members(
        org, owner, OrgRole.owner
    )

    assert [m.email for m in view.members] == [
        "pending@example.com",
        "owner@example.com",
        "member@example.com",
    ]
    assert view.members[0].status == "email_invite_pending"
    assert view.members[1].is_current_user is True
    assert view.organization_is_full is False
    assert view.current_user_is_owner is True
    assert view.invite_link.token == link.token
