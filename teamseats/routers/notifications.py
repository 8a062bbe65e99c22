"""
Notification endpoints, scoped to an organization.

GET  /organizations/{slug}/notifications                      - list (all / unread) + badge
POST /organizations/{slug}/notifications/{recipient_id}/read  - mark one as read
POST /organizations/{slug}/notifications/read-all             - mark all as read
POST /organizations/{slug}/notifications/panel-opened         - clear the badge
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.database import get_db
from teamseats.core.dependencies import get_org_member
from teamseats.models.membership import Membership
from teamseats.models.organization import Organization
from teamseats.schemas.notification import MarkAllReadResponse, NotificationListResponse
from teamseats.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service(
    db: AsyncSession = Depends(get_db),
) -> NotificationService:
    return NotificationService(db=db)


# ---------------------------------------------------------------------------
# GET /notifications
# ---------------------------------------------------------------------------

@router.get(
    "/{slug}/notifications",
    response_model=NotificationListResponse,
    summary="List my notifications in this organization",
)
async def list_notifications(
    unread_only: bool = Query(default=False),
    skip: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1, le=100),
    org_and_member: tuple[Organization, Membership] = Depends(get_org_member),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    org, member = org_and_member
    return await service.list_notifications(
        user_id=member.user_id,
        organization_id=org.id,
        unread_only=unread_only,
        skip=skip,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# POST /notifications/read-all
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/notifications/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    org_and_member: tuple[Organization, Membership] = Depends(get_org_member),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    org, member = org_and_member
    updated = await service.mark_all_read(member.user_id, org.id)
    return MarkAllReadResponse(updated=updated)


# ---------------------------------------------------------------------------
# POST /notifications/panel-opened
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/notifications/panel-opened",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Record that the notification panel was opened",
)
async def panel_opened(
    org_and_member: tuple[Organization, Membership] = Depends(get_org_member),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    org, member = org_and_member
    await service.mark_panel_opened(member.user_id, org.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# POST /notifications/{recipient_id}/read
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/notifications/{recipient_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark a notification as read",
)
async def mark_one_read(
    recipient_id: UUID,
    org_and_member: tuple[Organization, Membership] = Depends(get_org_member),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    org, member = org_and_member
    await service.mark_one_read(member.user_id, org.id, recipient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
