"""
Organization schemas.

Request/response models for organization and team member endpoints.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

from teamseats.models.membership import OrgRole

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

class OrganizationCreateRequest(BaseModel):
    """Request body for POST /organizations."""

    name: str = Field(min_length=2, max_length=100)
    slug: str = Field(min_length=3, max_length=50)

    @field_validator("slug")
    @classmethod
    def slug_must_be_valid(cls, v: str) -> str:
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                "Slug must be lowercase alphanumeric and hyphens only, "
                "and cannot start or end with a hyphen"
            )
        return v


class OrganizationUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{slug}. A new name also renames the slug."""

    name: str | None = Field(default=None, min_length=3, max_length=100)
    image_url: HttpUrl | None = None

    model_config = {"str_strip_whitespace": True}


class BillingEmailUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{slug}/billing-email."""

    billing_email: EmailStr = Field(max_length=255)


class OrganizationResponse(BaseModel):
    """Organization detail response."""

    id: UUID
    name: str
    slug: str
    image_url: str | None
    billing_email: str
    trial_end: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class SeatUsage(BaseModel):
    active_members: int
    max_seats: int
    is_full: bool


class OrganizationDetailResponse(BaseModel):
    """Response for GET /organizations/{slug}."""

    organization: OrganizationResponse
    role: OrgRole
    seats: SeatUsage


# ---------------------------------------------------------------------------
# Team members
# ---------------------------------------------------------------------------

TeamMemberStatus = Literal["created_the_organization", "joined_via_link", "email_invite_pending"]


class TeamMemberResponse(BaseModel):
    """A row of the team members table: a membership or a pending email invite."""

    id: UUID
    email: str
    name: str
    image_url: str | None = None
    role: OrgRole
    deactivated_at: datetime | None = None
    is_current_user: bool = False
    status: TeamMemberStatus


class InviteLinkInfo(BaseModel):
    token: str
    expires_at: datetime


class TeamMembersResponse(BaseModel):
    """Response for GET /organizations/{slug}/members."""

    members: list[TeamMemberResponse]
    organization_is_full: bool
    current_user_is_owner: bool
    invite_link: InviteLinkInfo | None


class MemberRoleUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{slug}/members/{user_id}."""

    role: Literal["member", "admin", "owner", "deactivated"]


class MemberRoleUpdateResponse(BaseModel):
    user_id: UUID
    role: OrgRole
    deactivated_at: datetime | None
