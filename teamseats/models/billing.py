"""
Stripe mirror ORM models.

Rows are written by the webhook sync and read by the capacity rule.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamseats.models.base import Base, TimestampMixin, UUIDMixin, now_utc

if TYPE_CHECKING:
    from teamseats.models.organization import Organization


class SubscriptionStatus(str, enum.Enum):
    """Stripe subscription status enumeration."""

    active = "active"
    trialing = "trialing"
    past_due = "past_due"
    canceled = "canceled"
    unpaid = "unpaid"
    incomplete = "incomplete"
    incomplete_expired = "incomplete_expired"
    paused = "paused"


class StripeProduct(Base, UUIDMixin, TimestampMixin):
    """Stripe product with its seat limit taken from product metadata."""

    __tablename__ = "stripe_products"

    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    max_seats: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<StripeProduct stripe_id={self.stripe_id!r} max_seats={self.max_seats}>"


class StripeSubscription(Base, UUIDMixin, TimestampMixin):
    """Stripe subscription owned by an organization."""

    __tablename__ = "stripe_subscriptions"

    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus, name="subscription_status"), nullable=False
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="subscriptions"
    )
    items: Mapped[list[StripeSubscriptionItem]] = relationship(
        "StripeSubscriptionItem",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="StripeSubscriptionItem.created_at",
    )

    def __repr__(self) -> str:
        return f"<StripeSubscription stripe_id={self.stripe_id!r} status={self.status.value}>"


class StripeSubscriptionItem(Base, UUIDMixin, TimestampMixin):
    """Line item of a subscription; quantity is the billed seat count."""

    __tablename__ = "stripe_subscription_items"

    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("stripe_subscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price_id: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relationships
    subscription: Mapped[StripeSubscription] = relationship(
        "StripeSubscription", back_populates="items"
    )