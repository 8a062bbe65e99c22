"""
Notification tests.

Verifies that:
- Notifications fan out to one recipient row per user
- Listing is scoped to the user and organization, newest first
- Read state is tracked per recipient
- The badge shows until the panel is opened after the newest notification
"""

import uuid
from datetime import timedelta

import pytest

from teamseats.core.exceptions import NotFoundError
from teamseats.models.base import now_utc
from teamseats.schemas.notification import LinkNotificationContent, parse_notification_content
from teamseats.services.notification_service import NotificationService, show_badge


def content(text: str) -> LinkNotificationContent:
    return LinkNotificationContent(text=text, href="/somewhere")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def test_show_badge():
    now = now_utc()
    assert show_badge(None, None) is False
    assert show_badge(now, None) is True
    assert show_badge(now, now - timedelta(seconds=1)) is True
    assert show_badge(now, now + timedelta(seconds=1)) is False
    assert show_badge(now, now.replace(tzinfo=None) + timedelta(seconds=1)) is False


def test_parse_notification_content():
    parsed = parse_notification_content({"type": "linkNotification", "text": "hi", "href": "/x"})
    assert parsed == LinkNotificationContent(text="hi", href="/x")

    with pytest.raises(ValueError):
        parse_notification_content({"type": "somethingElse", "text": "hi"})


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_for_no_users_is_a_no_op(make, db):
    owner = await make.user()
    org = await make.organization(owner)

    assert await NotificationService(db).create_for_users(org.id, [], content("x")) is None


@pytest.mark.asyncio
async def test_list_is_scoped_and_newest_first(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    other_org = await make.organization(owner)
    someone = await make.user()
    service = NotificationService(db)

    older = await service.create_for_users(org.id, [owner.id, owner.id], content("older"))
    older.created_at = now_utc() - timedelta(minutes=5)
    await service.create_for_users(org.id, [owner.id], content("newer"))
    await service.create_for_users(other_org.id, [owner.id], content("elsewhere"))
    await service.create_for_users(org.id, [someone.id], content("not mine"))
    await db.flush()

    listing = await service.list_notifications(owner.id, org.id)

    assert [item.content.text for item in listing.data] == ["newer", "older"]
    assert listing.unread_count == 2
    assert listing.show_badge is True
    assert len(older.recipients) == 1


@pytest.mark.asyncio
async def test_mark_one_read_and_unread_filter(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = NotificationService(db)
    await service.create_for_users(org.id, [owner.id], content("first"))
    await service.create_for_users(org.id, [owner.id], content("second"))

    listing = await service.list_notifications(owner.id, org.id)
    target = next(item for item in listing.data if item.content.text == "first")
    await service.mark_one_read(owner.id, org.id, target.recipient_id)

    unread = await service.list_notifications(owner.id, org.id, unread_only=True)
    assert [item.content.text for item in unread.data] == ["second"]
    assert unread.unread_count == 1


@pytest.mark.asyncio
async def test_mark_one_read_of_another_user_is_not_found(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    someone = await make.user()
    service = NotificationService(db)
    notification = await service.create_for_users(org.id, [someone.id], content("private"))

    with pytest.raises(NotFoundError):
        await service.mark_one_read(owner.id, org.id, notification.recipients[0].id)

    with pytest.raises(NotFoundError):
        await service.mark_one_read(owner.id, org.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_mark_all_read(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    other_org = await make.organization(owner)
    service = NotificationService(db)
    for text in ("a", "b", "c"):
        await service.create_for_users(org.id, [owner.id], content(text))
    await service.create_for_users(other_org.id, [owner.id], content("elsewhere"))

    assert await service.mark_all_read(owner.id, org.id) == 3

    listing = await service.list_notifications(owner.id, org.id)
    assert listing.unread_count == 0
    assert all(item.is_read for item in listing.data)
    assert (await service.list_notifications(owner.id, other_org.id)).unread_count == 1


@pytest.mark.asyncio
async def test_opening_the_panel_clears_the_badge(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = NotificationService(db)
    notification = await service.create_for_users(org.id, [owner.id], content("hello"))
    notification.created_at = now_utc() - timedelta(minutes=1)
    await db.flush()

    assert (await service.list_notifications(owner.id, org.id)).show_badge is True

    await service.mark_panel_opened(owner.id, org.id)

    listing = await service.list_notifications(owner.id, org.id)
    assert listing.show_badge is False
    assert listing.unread_count == 1


@pytest.mark.asyncio
async def test_pagination(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = NotificationService(db)
    for minutes in range(5):
        n = await service.create_for_users(org.id, [owner.id], content(f"n{minutes}"))
        n.created_at = now_utc() - timedelta(minutes=minutes)
    await db.flush()

    page = await service.list_notifications(owner.id, org.id, skip=1, limit=2)

    assert [item.content.text for item in page.data] == ["n1", "n2"]
    assert page.unread_count == 5
    assert page.has_more is True

    last_page = await service.list_notifications(owner.id, org.id, skip=3, limit=2)
    assert [item.content.text for item in last_page.data] == ["n3", "n4"]
    assert last_page.has_more is False

    await service.mark_one_read(owner.id, org.id, last_page.data[0].recipient_id)
    unread = await service.list_notifications(owner.id, org.id, unread_only=True, skip=2, limit=2)
    assert [item.content.text for item in unread.data] == ["n2", "n4"]
    assert unread.has_more is False
