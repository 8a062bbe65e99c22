"""
Seat capacity rule.

An organization is full when its active member count reaches the seat limit
of its current plan. The current plan is the most recently created
subscription; a canceled or past-due subscription (or none at all) falls back
to the trial ceiling.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.models.billing import (
    StripeProduct,
    StripeSubscription,
    StripeSubscriptionItem,
    SubscriptionStatus,
)
from teamseats.models.membership import Membership

DEFAULT_MAX_SEATS = 25

_NON_ENTITLED_STATUSES = frozenset({SubscriptionStatus.canceled, SubscriptionStatus.past_due})


@dataclass(frozen=True)
class SubscriptionSeats:
    """The parts of a subscription the capacity rule and seat updates need."""

    stripe_id: str
    status: SubscriptionStatus
    item_stripe_id: str | None
    max_seats: int | None


def effective_max_seats(subscriptions: Sequence[SubscriptionSeats]) -> int:
    """Seat limit granted by the latest subscription, or the trial ceiling."""
    if not subscriptions:
        return DEFAULT_MAX_SEATS
    latest = subscriptions[0]
    if latest.status in _NON_ENTITLED_STATUSES or latest.max_seats is None:
        return DEFAULT_MAX_SEATS
    return latest.max_seats


def organization_is_full(
    active_member_count: int, subscriptions: Sequence[SubscriptionSeats]
) -> bool:
    return active_member_count >= effective_max_seats(subscriptions)


def subscription_is_billable(subscription: SubscriptionSeats | None) -> bool:
    """Seat quantity updates are only sent for uncanceled subscriptions with an item."""
    return (
        subscription is not None
        and subscription.status != SubscriptionStatus.canceled
        and subscription.item_stripe_id is not None
    )


@dataclass(frozen=True)
class SeatSnapshot:
    """Active member count and latest subscription of one organization."""

    organization_id: UUID
    active_member_count: int
    subscription: SubscriptionSeats | None

    @property
    def subscriptions(self) -> list[SubscriptionSeats]:
        return [self.subscription] if self.subscription is not None else []

    @property
    def max_seats(self) -> int:
        return effective_max_seats(self.subscriptions)

    @property
    def is_full(self) -> bool:
        return organization_is_full(self.active_member_count, self.subscriptions)

    @property
    def billable_subscription(self) -> SubscriptionSeats | None:
        return self.subscription if subscription_is_billable(self.subscription) else None


async def load_seat_snapshot(
    db: AsyncSession, organization_id: UUID, lock: bool = False
) -> SeatSnapshot:
    """
    Read the active member count and latest subscription of an organization.

    With lock=True on PostgreSQL, a transaction-scoped advisory lock keyed by
    the organization serializes concurrent check-then-admit sequences until
    the request transaction ends.
    """
    if lock and db.get_bind().dialect.name == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": str(organization_id)},
        )

    count_result = await db.execute(
        select(func.count())
        .select_from(Membership)
        .where(
            Membership.organization_id == organization_id,
            Membership.deactivated_at.is_(None),
        )
    )
    active_member_count = count_result.scalar_one()

    sub_result = await db.execute(
        select(StripeSubscription.id, StripeSubscription.stripe_id, StripeSubscription.status)
        .where(StripeSubscription.organization_id == organization_id)
        .order_by(StripeSubscription.created.desc())
        .limit(1)
    )
    latest = sub_result.first()
    if latest is None:
        return SeatSnapshot(organization_id, active_member_count, None)

    item_result = await db.execute(
        select(StripeSubscriptionItem.stripe_id, StripeProduct.max_seats)
        .outerjoin(StripeProduct, StripeProduct.stripe_id == StripeSubscriptionItem.product_id)
        .where(StripeSubscriptionItem.subscription_id == latest.id)
        .order_by(StripeSubscriptionItem.created_at, StripeSubscriptionItem.stripe_id)
        .limit(1)
    )
    item = item_result.first()

    subscription = SubscriptionSeats(
        stripe_id=latest.stripe_id,
        status=latest.status,
        item_stripe_id=item.stripe_id if item else None,
        max_seats=item.max_seats if item else None,
    )
    return SeatSnapshot(organization_id, active_member_count, subscription)
