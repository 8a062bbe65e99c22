"""
Pydantic schemas for notifications.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Content variants (dispatched on the "type" field)
# ---------------------------------------------------------------------------

class LinkNotificationContent(BaseModel):
    """A notification that links to a page in the app."""
    type: Literal["linkNotification"] = "linkNotification"
    text: str = Field(min_length=1)
    href: str = Field(min_length=1)


NotificationContent = LinkNotificationContent

CONTENT_MODELS: dict[str, type[NotificationContent]] = {
    "linkNotification": LinkNotificationContent,
}


def parse_notification_content(data: dict[str, Any]) -> NotificationContent:
    """
    Validate stored notification content against its variant.

    Raises:
        ValueError: If the type is unknown or the payload does not match it.
    """
    model = CONTENT_MODELS.get(data.get("type", ""))
    if model is None:
        raise ValueError(f"Unknown notification content type: {data.get('type')!r}")
    return model.model_validate(data)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------

class NotificationItem(BaseModel):
    """A notification as seen by one recipient."""
    recipient_id: uuid.UUID
    notification_id: uuid.UUID
    content: NotificationContent
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    """Response for GET /notifications."""
    data: list[NotificationItem]
    has_more: bool
    unread_count: int
    show_badge: bool


class MarkAllReadResponse(BaseModel):
    updated: int
