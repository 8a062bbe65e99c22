"""
Billing collaborator and Stripe webhook sync.

The gateway mutates subscriptions at Stripe; the webhook sync mirrors
Stripe's products and subscriptions into the local tables the capacity rule
reads from.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

import stripe
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from teamseats.core.config import settings
from teamseats.models.billing import (
    StripeProduct,
    StripeSubscription,
    StripeSubscriptionItem,
    SubscriptionStatus,
)
from teamseats.models.base import now_utc
from teamseats.models.organization import Organization

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class BillingGateway(Protocol):
    async def adjust_seats(
        self, subscription_id: str, subscription_item_id: str, new_quantity: int
    ) -> None: ...

    async def deactivate_customer(self, customer_id: str) -> None: ...

    async def update_customer(
        self, customer_id: str, name: str | None = None, email: str | None = None
    ) -> None: ...


class StripeBillingGateway:
    """BillingGateway backed by the Stripe API. Calls are not retried."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key or settings.STRIPE_SECRET_KEY

    async def adjust_seats(
        self, subscription_id: str, subscription_item_id: str, new_quantity: int
    ) -> None:
        logger.info(
            "Adjusting seats subscription=%s item=%s quantity=%d",
            subscription_id,
            subscription_item_id,
            new_quantity,
        )
        await run_in_threadpool(
            stripe.Subscription.modify,
            subscription_id,
            api_key=self.api_key,
            items=[{"id": subscription_item_id, "quantity": new_quantity}],
        )

    async def deactivate_customer(self, customer_id: str) -> None:
        """Cancel every active subscription of a customer."""
        subscriptions = await run_in_threadpool(self._list_active_subscriptions, customer_id)
        for subscription in subscriptions:
            await run_in_threadpool(
                stripe.Subscription.cancel, subscription.id, api_key=self.api_key
            )
            logger.info("Canceled subscription=%s customer=%s", subscription.id, customer_id)

    async def update_customer(
        self, customer_id: str, name: str | None = None, email: str | None = None
    ) -> None:
        """Sync the organization name or billing email to the Stripe customer."""
        fields = {key: value for key, value in (("name", name), ("email", email)) if value}
        if not fields:
            return
        await run_in_threadpool(
            stripe.Customer.modify, customer_id, api_key=self.api_key, **fields
        )
        logger.info("Updated customer=%s fields=%s", customer_id, sorted(fields))

    def _list_active_subscriptions(self, customer_id: str) -> list[stripe.Subscription]:
        page = stripe.Subscription.list(api_key=self.api_key, customer=customer_id, status="active")
        return list(page.auto_paging_iter())


# ---------------------------------------------------------------------------
# Webhook sync
# ---------------------------------------------------------------------------

def verify_webhook(payload: bytes, signature: str | None) -> None:
    """
    Verify a Stripe webhook signature.

    Raises:
        ValueError: If the payload is not valid JSON.
        stripe.error.SignatureVerificationError: If the signature does not match.
    """
    stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)


def _from_timestamp(value: int | None) -> datetime:
    return datetime.fromtimestamp(value, UTC) if value is not None else now_utc()


def _parse_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


class BillingService:
    """Mirrors Stripe events into the local billing tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[None]]] = {
            "customer.subscription.created": self._sync_subscription,
            "customer.subscription.updated": self._sync_subscription,
            "customer.subscription.deleted": self._sync_subscription,
            "product.created": self._sync_product,
            "product.updated": self._sync_product,
            "customer.deleted": self._clear_customer,
            "checkout.session.completed": self._complete_checkout,
        }

    async def handle_event(self, event: dict[str, Any]) -> bool:
        """
        Apply a verified webhook event.

        Returns False for event types that are acknowledged but ignored.
        """
        handler = self._handlers.get(event.get("type", ""))
        if handler is None:
            logger.debug("Ignoring Stripe event type=%s", event.get("type"))
            return False
        await handler(event["data"]["object"])
        await self.db.flush()
        return True

    async def _sync_subscription(self, obj: dict[str, Any]) -> None:
        result = await self.db.execute(
            select(StripeSubscription).where(StripeSubscription.stripe_id == obj["id"])
        )
        subscription = result.scalar_one_or_none()

        if subscription is None:
            organization_id = _parse_uuid((obj.get("metadata") or {}).get("organizationId"))
            if organization_id is None or await self.db.get(Organization, organization_id) is None:
                logger.warning(
                    "Subscription %s has no known organization in metadata; skipping",
                    obj["id"],
                )
                return
            subscription = StripeSubscription(
                stripe_id=obj["id"], organization_id=organization_id
            )
            self.db.add(subscription)

        subscription.status = SubscriptionStatus(obj["status"])
        subscription.cancel_at_period_end = bool(obj.get("cancel_at_period_end", False))
        subscription.created = _from_timestamp(obj.get("created"))
        await self.db.flush()

        await self.db.execute(
            delete(StripeSubscriptionItem).where(
                StripeSubscriptionItem.subscription_id == subscription.id
            )
        )
        for item in (obj.get("items") or {}).get("data", []):
            price = item["price"]
            product = price["product"]
            self.db.add(
                StripeSubscriptionItem(
                    stripe_id=item["id"],
                    subscription_id=subscription.id,
                    price_id=price["id"],
                    product_id=product if isinstance(product, str) else product["id"],
                    quantity=item.get("quantity") or 1,
                )
            )
        logger.info(
            "Synced subscription=%s organization=%s status=%s",
            subscription.stripe_id,
            subscription.organization_id,
            subscription.status.value,
        )

    async def _sync_product(self, obj: dict[str, Any]) -> None:
        result = await self.db.execute(
            select(StripeProduct).where(StripeProduct.stripe_id == obj["id"])
        )
        product = result.scalar_one_or_none()
        if product is None:
            product = StripeProduct(stripe_id=obj["id"])
            self.db.add(product)

        raw_max_seats = (obj.get("metadata") or {}).get("max_seats")
        product.name = obj.get("name") or ""
        product.max_seats = int(raw_max_seats) if raw_max_seats else None
        logger.info("Synced product=%s max_seats=%s", product.stripe_id, product.max_seats)

    async def _clear_customer(self, obj: dict[str, Any]) -> None:
        result = await self.db.execute(
            select(Organization).where(Organization.stripe_customer_id == obj["id"])
        )
        for organization in result.scalars():
            organization.stripe_customer_id = None

    async def _complete_checkout(self, obj: dict[str, Any]) -> None:
        organization_id = _parse_uuid((obj.get("metadata") or {}).get("organizationId"))
        organization = (
            await self.db.get(Organization, organization_id) if organization_id else None
        )
        if organization is None:
            logger.warning("Checkout session %s has no known organization", obj.get("id"))
            return

        email = (obj.get("customer_details") or {}).get("email")
        if email:
            organization.billing_email = email
        if isinstance(obj.get("customer"), str):
            organization.stripe_customer_id = obj["customer"]
        organization.trial_end = now_utc()
