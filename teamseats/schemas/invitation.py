"""
Invitation schemas.

Request/response models for invite links, email invites and the public
invite pages.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from teamseats.models.membership import OrgRole


# ---------------------------------------------------------------------------
# Invite links
# ---------------------------------------------------------------------------

class InviteLinkResponse(BaseModel):
    """Invite link detail response."""

    id: UUID
    organization_id: UUID
    token: str
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Email invites
# ---------------------------------------------------------------------------

class EmailInviteRequest(BaseModel):
    """Request body for POST /organizations/{slug}/email-invites."""

    email: EmailStr = Field(max_length=255)
    role: OrgRole = OrgRole.member


class EmailInviteResponse(BaseModel):
    """Email invite detail response. The token is only sent by email."""

    id: UUID
    organization_id: UUID
    email: str
    role: OrgRole
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Public invite pages
# ---------------------------------------------------------------------------

class InviteInfoResponse(BaseModel):
    """What the invite page shows before the user accepts."""

    organization_name: str
    inviter_name: str
    role: OrgRole
    expires_at: datetime


class AcceptInviteResponse(BaseModel):
    """Outcome of accepting an invite."""

    status: Literal["joined", "already_member"]
    organization_id: UUID
    organization_slug: str
    organization_name: str


class PendingInviteResponse(BaseModel):
    """The invite remembered for the browser, resumed after sign-in."""

    kind: Literal["invite_link", "email_invite"]
    token: str
    invite: InviteInfoResponse
