"""
Organization management endpoints.

Create, detail, settings updates, delete, team members, role transitions, invite links and
email invites.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.database import get_db
from teamseats.core.dependencies import (
    get_billing_gateway,
    get_current_user,
    get_org_member,
    require_role,
)
from teamseats.models.membership import Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.schemas.invitation import (
    EmailInviteRequest,
    EmailInviteResponse,
    InviteLinkResponse,
)
from teamseats.schemas.organization import (
    BillingEmailUpdateRequest,
    MemberRoleUpdateRequest,
    MemberRoleUpdateResponse,
    OrganizationCreateRequest,
    OrganizationDetailResponse,
    OrganizationResponse,
    OrganizationUpdateRequest,
    TeamMembersResponse,
)
from teamseats.services.billing_service import BillingGateway
from teamseats.services.invitation_service import InvitationService
from teamseats.services.membership_service import MembershipService
from teamseats.services.organization_service import OrganizationService

router = APIRouter()

OrgAdmin = require_role(OrgRole.owner, OrgRole.admin)


def get_org_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingGateway = Depends(get_billing_gateway),
) -> OrganizationService:
    """Dependency that constructs OrganizationService."""
    return OrganizationService(db=db, billing=billing)


def get_invitation_service(db: AsyncSession = Depends(get_db)) -> InvitationService:
    return InvitationService(db=db)


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingGateway = Depends(get_billing_gateway),
    invitations: InvitationService = Depends(get_invitation_service),
) -> MembershipService:
    return MembershipService(db=db, billing=billing, invitations=invitations)


# ---------------------------------------------------------------------------
# Create Organization
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new organization",
)
async def create_organization(
    data: OrganizationCreateRequest,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    """
    Create a new organization.

    - Slug must be globally unique (lowercase alphanumeric + hyphens)
    - Creator is automatically assigned Owner role
    """
    org = await service.create_organization(data, current_user)
    return OrganizationResponse.model_validate(org)


# ---------------------------------------------------------------------------
# Get / Update / Delete Organization
# ---------------------------------------------------------------------------

@router.get(
    "/{slug}",
    response_model=OrganizationDetailResponse,
    summary="Get organization with seat usage",
)
async def get_organization(
    org_and_member: tuple[Organization, Membership] = Depends(get_org_member),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationDetailResponse:
    """Get organization details and seat usage. Must be an active member."""
    org, member = org_and_member
    return await service.get_organization_detail(org, member)


@router.patch(
    "/{slug}",
    response_model=OrganizationResponse,
    summary="Update organization name or image",
)
async def update_organization(
    data: OrganizationUpdateRequest,
    org_and_member: tuple[Organization, Membership] = Depends(require_role(OrgRole.owner)),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    """
    Update the general settings. Requires Owner role.

    - A new name moves the organization to the slug derived from it
    - Fails with SLUG_TAKEN when another organization already uses that slug
    """
    org, member = org_and_member
    org = await service.update_organization(org, member, data)
    return OrganizationResponse.model_validate(org)


@router.patch(
    "/{slug}/billing-email",
    response_model=OrganizationResponse,
    summary="Change the billing email",
)
async def update_billing_email(
    data: BillingEmailUpdateRequest,
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    """Update the billing email here and on the Stripe customer. Requires Admin or above."""
    org, _ = org_and_member
    org = await service.update_billing_email(org, data.billing_email)
    return OrganizationResponse.model_validate(org)


@router.delete(
    "/{slug}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete organization",
)
async def delete_organization(
    org_and_member: tuple[Organization, Membership] = Depends(require_role(OrgRole.owner)),
    service: OrganizationService = Depends(get_org_service),
) -> Response:
    """Delete the organization and cancel its subscriptions. Requires Owner role."""
    org, member = org_and_member
    await service.delete_organization(org, member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Team Members
# ---------------------------------------------------------------------------

@router.get(
    "/{slug}/members",
    response_model=TeamMembersResponse,
    summary="List team members and pending email invites",
)
async def list_members(
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
) -> TeamMembersResponse:
    org, member = org_and_member
    return await service.list_team_members(org, current_user, member.role)


@router.patch(
    "/{slug}/members/{user_id}",
    response_model=MemberRoleUpdateResponse,
    summary="Change a member's role or deactivate/reactivate them",
)
async def update_member(
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    service: MembershipService = Depends(get_membership_service),
) -> MemberRoleUpdateResponse:
    """
    Apply a role transition.

    - `deactivated` frees the member's seat
    - A role on a deactivated member reactivates them if a seat is free
    - Admins cannot change owners or grant the owner role
    """
    org, member = org_and_member
    target = await service.change_member_role(
        organization_id=org.id,
        acting_user_id=member.user_id,
        acting_role=member.role,
        target_user_id=user_id,
        requested=data.role,
    )
    return MemberRoleUpdateResponse(
        user_id=target.user_id, role=target.role, deactivated_at=target.deactivated_at
    )


# ---------------------------------------------------------------------------
# Invite Link
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/invite-link",
    response_model=InviteLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new invite link",
)
async def create_invite_link(
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> InviteLinkResponse:
    """Replace the active invite link. Fails with ORGANIZATION_FULL when no seat is free."""
    org, _ = org_and_member
    link = await service.create_invite_link(org, current_user)
    return InviteLinkResponse.model_validate(link)


@router.delete(
    "/{slug}/invite-link",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate the invite link",
)
async def deactivate_invite_link(
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    service: InvitationService = Depends(get_invitation_service),
) -> Response:
    org, _ = org_and_member
    await service.deactivate_invite_link(org)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Email Invites
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/email-invites",
    response_model=EmailInviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone by email",
)
async def invite_by_email(
    data: EmailInviteRequest,
    org_and_member: tuple[Organization, Membership] = Depends(OrgAdmin),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> EmailInviteResponse:
    """
    Send an email invite.

    - Only owners can invite as owner
    - Fails with ALREADY_MEMBER naming the email if it belongs to a member
    """
    org, member = org_and_member
    invite = await service.invite_by_email(org, current_user, member.role, data.email, data.role)
    return EmailInviteResponse.model_validate(invite)
