"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from teamseats.models.base import Base, TimestampMixin, UUIDMixin
from teamseats.models.membership import Membership, OrgRole
from teamseats.models.organization import Organization
from teamseats.models.user import User
from teamseats.models.billing import (
    StripeProduct,
    StripeSubscription,
    StripeSubscriptionItem,
    SubscriptionStatus,
)
from teamseats.models.invite_link import InviteLink, InviteLinkUse
from teamseats.models.email_invite import EmailInvite
from teamseats.models.notification import Notification, NotificationPanel, NotificationRecipient

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Organization",
    "User",
    "Membership",
    "OrgRole",
    "StripeProduct",
    "StripeSubscription",
    "StripeSubscriptionItem",
    "SubscriptionStatus",
    "InviteLink",
    "InviteLinkUse",
    "EmailInvite",
    "Notification",
    "NotificationPanel",
    "NotificationRecipient",
]
