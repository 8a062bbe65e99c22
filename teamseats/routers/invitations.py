"""
Public invite endpoints.

GET  /invitations/invite-link/{token}          - invite link page info
POST /invitations/invite-link/{token}/accept   - join through an invite link
GET  /invitations/email-invite/{token}         - email invite page info
POST /invitations/email-invite/{token}/accept  - join through an email invite
GET  /invitations/pending                       - resume the remembered invite
"""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.config import settings
from teamseats.core.database import get_db
from teamseats.core.dependencies import get_billing_gateway, get_current_user, get_invite_store
from teamseats.core.exceptions import NotFoundError, OrganizationFullError
from teamseats.core.invite_session import PENDING_INVITE_COOKIE, InviteKind, PendingInviteStore
from teamseats.models.user import User
from teamseats.routers.organizations import get_invitation_service
from teamseats.schemas.invitation import (
    AcceptInviteResponse,
    InviteInfoResponse,
    PendingInviteResponse,
)
from teamseats.services.admission_service import AdmissionService
from teamseats.services.billing_service import BillingGateway
from teamseats.services.invitation_service import InvitationService, ResolvedInvite

router = APIRouter()


def get_admission_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingGateway = Depends(get_billing_gateway),
    invitations: InvitationService = Depends(get_invitation_service),
) -> AdmissionService:
    return AdmissionService(db=db, billing=billing, invitations=invitations)


async def _remember_invite(
    response: Response,
    store: PendingInviteStore,
    kind: InviteKind,
    resolved: ResolvedInvite,
    current_session: str | None,
) -> None:
    session_id = await store.create(
        kind, resolved.invite.token, resolved.invite.expires_at, session_id=current_session
    )
    if session_id is not None:
        response.set_cookie(
            PENDING_INVITE_COOKIE,
            session_id,
            max_age=settings.PENDING_INVITE_TTL_SECONDS,
            httponly=True,
            samesite="lax",
            secure=settings.ENVIRONMENT == "production",
        )


async def _forget_invite(store: PendingInviteStore, session_id: str | None) -> None:
    if session_id:
        await store.destroy(session_id)


def _organization_full_response(exc: OrganizationFullError) -> JSONResponse:
    response = JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})
    response.delete_cookie(PENDING_INVITE_COOKIE)
    return response


# ---------------------------------------------------------------------------
# Invite link
# ---------------------------------------------------------------------------

@router.get(
    "/invite-link/{token}",
    response_model=InviteInfoResponse,
    summary="Get invite link info",
)
async def get_invite_link_info(
    token: str,
    response: Response,
    service: InvitationService = Depends(get_invitation_service),
    store: PendingInviteStore = Depends(get_invite_store),
    pending_invite: str | None = Cookie(default=None),
) -> InviteInfoResponse:
    """Show who invited the user where, and remember the invite for after sign-in."""
    resolved, info = await service.invite_link_info(token)
    await _remember_invite(response, store, "invite_link", resolved, pending_invite)
    return info


@router.post(
    "/invite-link/{token}/accept",
    response_model=AcceptInviteResponse,
    summary="Join an organization through an invite link",
)
async def accept_invite_link(
    token: str,
    current_user: User = Depends(get_current_user),
    service: AdmissionService = Depends(get_admission_service),
    store: PendingInviteStore = Depends(get_invite_store),
    pending_invite: str | None = Cookie(default=None),
) -> AcceptInviteResponse | JSONResponse:
    try:
        result = await service.accept_invite_link(token, current_user)
    except OrganizationFullError as exc:
        await _forget_invite(store, pending_invite)
        return _organization_full_response(exc)
    await _forget_invite(store, pending_invite)
    return result


# ---------------------------------------------------------------------------
# Email invite
# ---------------------------------------------------------------------------

@router.get(
    "/email-invite/{token}",
    response_model=InviteInfoResponse,
    summary="Get email invite info",
)
async def get_email_invite_info(
    token: str,
    response: Response,
    service: InvitationService = Depends(get_invitation_service),
    store: PendingInviteStore = Depends(get_invite_store),
    pending_invite: str | None = Cookie(default=None),
) -> InviteInfoResponse:
    resolved, info = await service.email_invite_info(token)
    await _remember_invite(response, store, "email_invite", resolved, pending_invite)
    return info


@router.post(
    "/email-invite/{token}/accept",
    response_model=AcceptInviteResponse,
    summary="Join an organization through an email invite",
)
async def accept_email_invite(
    token: str,
    current_user: User = Depends(get_current_user),
    service: AdmissionService = Depends(get_admission_service),
    store: PendingInviteStore = Depends(get_invite_store),
    pending_invite: str | None = Cookie(default=None),
) -> AcceptInviteResponse | JSONResponse:
    try:
        result = await service.accept_email_invite(token, current_user)
    except OrganizationFullError as exc:
        await _forget_invite(store, pending_invite)
        return _organization_full_response(exc)
    await _forget_invite(store, pending_invite)
    return result


# ---------------------------------------------------------------------------
# Pending invite
# ---------------------------------------------------------------------------

@router.get(
    "/pending",
    response_model=PendingInviteResponse,
    summary="Resume the invite remembered for this browser",
)
async def get_pending_invite(
    service: InvitationService = Depends(get_invitation_service),
    store: PendingInviteStore = Depends(get_invite_store),
    pending_invite: str | None = Cookie(default=None),
) -> PendingInviteResponse | JSONResponse:
    """
    Re-resolve the remembered invite for the sign-in and sign-up pages.

    - Email invites take precedence over invite links
    - Invites that were deactivated or expired are dropped from the session
    - Fails with NOT_FOUND and clears the cookie when nothing valid remains
    """
    pending = await store.get(pending_invite) if pending_invite else None
    if pending is not None:
        lookups = (
            ("email_invite", service.email_invite_info),
            ("invite_link", service.invite_link_info),
        )
        stale = False
        for kind, lookup in lookups:
            token = pending.token_for(kind)
            if token is None:
                continue
            try:
                _, info = await lookup(token)
            except NotFoundError:
                pending = pending.with_token(kind, None)
                stale = True
                continue
            if stale:
                await store.save(pending_invite, pending)
            return PendingInviteResponse(kind=kind, token=token, invite=info)

    await _forget_invite(store, pending_invite)
    response = JSONResponse(
        status_code=NotFoundError.status_code,
        content={"detail": NotFoundError("No pending invite").to_detail()},
    )
    response.delete_cookie(PENDING_INVITE_COOKIE)
    return response
