"""
Business logic for notifications.
Handles fan-out to recipients, read state and the per-user panel badge.
All queries scoped by organization_id / user_id.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.config import settings
from teamseats.core.exceptions import NotFoundError
from teamseats.models.base import as_utc, now_utc
from teamseats.models.notification import Notification, NotificationPanel, NotificationRecipient
from teamseats.schemas.notification import (
    NotificationContent,
    NotificationItem,
    NotificationListResponse,
    parse_notification_content,
)

logger = logging.getLogger(__name__)


def show_badge(latest_created_at: datetime | None, last_opened_at: datetime | None) -> bool:
    """True when there is a notification newer than the last time the panel was opened."""
    if latest_created_at is None:
        return False
    if last_opened_at is None:
        return True
    return as_utc(last_opened_at) < as_utc(latest_created_at)


class NotificationService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def create_for_users(
        self,
        organization_id: uuid.UUID,
        user_ids: list[uuid.UUID],
        content: NotificationContent,
    ) -> Notification | None:
        """Create one notification with a recipient row per user. No-op for no users."""
        if not user_ids:
            return None

        notification = Notification(
            organization_id=organization_id,
            content=content.model_dump(mode="json"),
        )
        notification.recipients = [
            NotificationRecipient(user_id=user_id) for user_id in dict.fromkeys(user_ids)
        ]
        self._db.add(notification)
        await self._db.flush()
        logger.info(
            "Notification %s sent to %d recipients in organization %s",
            notification.id,
            len(notification.recipients),
            organization_id,
        )
        return notification

    async def ensure_panel(self, user_id: uuid.UUID, organization_id: uuid.UUID) -> NotificationPanel:
        panel = await self._get_panel(user_id, organization_id)
        if panel is None:
            panel = NotificationPanel(user_id=user_id, organization_id=organization_id)
            self._db.add(panel)
            await self._db.flush()
        return panel

    # ------------------------------------------------------------------
    # GET /notifications
    # ------------------------------------------------------------------

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        unread_only: bool = False,
        skip: int = 0,
        limit: int | None = None,
    ) -> NotificationListResponse:
        """
        List the user's notifications in an organization, newest first.
        Optionally filter to unread only.
        """
        scope = (
            NotificationRecipient.user_id == user_id,
            Notification.organization_id == organization_id,
        )

        stmt = (
            select(NotificationRecipient, Notification)
            .join(Notification, Notification.id == NotificationRecipient.notification_id)
            .where(*scope)
        )
        if unread_only:
            stmt = stmt.where(NotificationRecipient.read_at.is_(None))
        page_size = limit or settings.NOTIFICATIONS_PAGE_SIZE
        # One extra row tells whether another page exists.
        stmt = stmt.order_by(Notification.created_at.desc()).offset(skip).limit(page_size + 1)
        rows = (await self._db.execute(stmt)).all()
        has_more = len(rows) > page_size
        rows = rows[:page_size]

        unread_count = await self._db.scalar(
            select(func.count())
            .select_from(NotificationRecipient)
            .join(Notification, Notification.id == NotificationRecipient.notification_id)
            .where(*scope, NotificationRecipient.read_at.is_(None))
        ) or 0

        latest_created_at = await self._db.scalar(
            select(func.max(Notification.created_at))
            .join(NotificationRecipient, NotificationRecipient.notification_id == Notification.id)
            .where(*scope)
        )
        panel = await self._get_panel(user_id, organization_id)

        return NotificationListResponse(
            data=[
                NotificationItem(
                    recipient_id=recipient.id,
                    notification_id=notification.id,
                    content=parse_notification_content(notification.content),
                    is_read=recipient.read_at is not None,
                    created_at=notification.created_at,
                )
                for recipient, notification in rows
            ],
            has_more=has_more,
            unread_count=unread_count,
            show_badge=show_badge(latest_created_at, panel.last_opened_at if panel else None),
        )

    # ------------------------------------------------------------------
    # POST /notifications/{recipient_id}/read
    # ------------------------------------------------------------------

    async def mark_one_read(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> NotificationRecipient:
        """
        Mark a single notification as read for its recipient.
        Scoped to user_id + organization_id to prevent cross-user updates.
        """
        recipient = await self._db.scalar(
            select(NotificationRecipient)
            .join(Notification, Notification.id == NotificationRecipient.notification_id)
            .where(
                NotificationRecipient.id == recipient_id,
                NotificationRecipient.user_id == user_id,
                Notification.organization_id == organization_id,
            )
        )
        if recipient is None:
            raise NotFoundError("Notification not found")

        if recipient.read_at is None:
            recipient.read_at = now_utc()
            await self._db.flush()
        return recipient

    # ------------------------------------------------------------------
    # POST /notifications/read-all
    # ------------------------------------------------------------------

    async def mark_all_read(self, user_id: uuid.UUID, organization_id: uuid.UUID) -> int:
        """Mark every unread notification of the user in the organization as read."""
        in_organization = select(Notification.id).where(
            Notification.organization_id == organization_id
        )
        result = await self._db.execute(
            update(NotificationRecipient)
            .where(
                NotificationRecipient.user_id == user_id,
                NotificationRecipient.read_at.is_(None),
                NotificationRecipient.notification_id.in_(in_organization),
            )
            .values(read_at=now_utc())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # POST /notifications/panel-opened
    # ------------------------------------------------------------------

    async def mark_panel_opened(
        self, user_id: uuid.UUID, organization_id: uuid.UUID
    ) -> NotificationPanel:
        panel = await self.ensure_panel(user_id, organization_id)
        panel.last_opened_at = now_utc()
        await self._db.flush()
        return panel

    async def _get_panel(
        self, user_id: uuid.UUID, organization_id: uuid.UUID
    ) -> NotificationPanel | None:
        return await self._db.scalar(
            select(NotificationPanel).where(
                NotificationPanel.user_id == user_id,
                NotificationPanel.organization_id == organization_id,
            )
        )
