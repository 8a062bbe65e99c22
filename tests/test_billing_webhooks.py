"""
Stripe webhook sync tests.

Verifies that:
- Products and subscriptions are mirrored into the local tables
- The capacity rule reads the mirrored seat limit
- Subscriptions for unknown organizations are skipped
- Signed requests are accepted and unsigned ones rejected
"""

import hashlib
import hmac
import json
import time
import uuid

import pytest
from sqlalchemy import select

from teamseats.core.config import settings
from teamseats.models import Organization, StripeSubscription
from teamseats.models.billing import SubscriptionStatus
from teamseats.services.billing_service import BillingService
from teamseats.services.capacity import DEFAULT_MAX_SEATS, load_seat_snapshot


def product_event(product_id: str, max_seats: int | None, event_type: str = "product.created") -> dict:
    metadata = {"max_seats": str(max_seats)} if max_seats is not None else {}
    return {
        "type": event_type,
        "data": {"object": {"id": product_id, "name": "Team", "metadata": metadata}},
    }


def subscription_event(
    org_id,
    status: str = "active",
    event_type: str = "customer.subscription.created",
    items: list[tuple[str, str, int]] | None = None,
) -> dict:
    items = items if items is not None else [("si_1", "prod_team", 3)]
    return {
        "type": event_type,
        "data": {
            "object": {
                "id": "sub_1",
                "status": status,
                "cancel_at_period_end": False,
                "created": 1_760_000_000,
                "metadata": {"organizationId": str(org_id)},
                "items": {
                    "data": [
                        {
                            "id": item_id,
                            "quantity": quantity,
                            "price": {"id": f"price_{item_id}", "product": product},
                        }
                        for item_id, product, quantity in items
                    ]
                },
            }
        },
    }


# ---------------------------------------------------------------------------
# Event handling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_subscription_sync_feeds_the_capacity_rule(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = BillingService(db)

    assert await service.handle_event(product_event("prod_team", 1)) is True
    assert await service.handle_event(subscription_event(org.id)) is True

    snapshot = await load_seat_snapshot(db, org.id)
    assert snapshot.max_seats == 1
    assert snapshot.is_full is True
    assert snapshot.billable_subscription.stripe_id == "sub_1"
    assert snapshot.billable_subscription.item_stripe_id == "si_1"


@pytest.mark.asyncio
async def test_subscription_before_product(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = BillingService(db)

    await service.handle_event(subscription_event(org.id))
    assert (await load_seat_snapshot(db, org.id)).max_seats == DEFAULT_MAX_SEATS

    await service.handle_event(product_event("prod_team", 4))
    assert (await load_seat_snapshot(db, org.id)).max_seats == 4


@pytest.mark.asyncio
async def test_subscription_update_replaces_status_and_items(make, db):
    owner = await make.user()
    org = await make.organization(owner)
    service = BillingService(db)
    await service.handle_event(product_event("prod_team", 2))
    await service.handle_event(subscription_event(org.id))

    await service.handle_event(
        subscription_event(
            org.id,
            status="past_due",
            event_type="customer.subscription.updated",
            items=[("si_2", "prod_team", 5)],
        )
    )

    subscription = await db.scalar(select(StripeSubscription).where(StripeSubscription.stripe_id == "sub_1"))
    assert subscription.status == SubscriptionStatus.past_due
    snapshot = await load_seat_snapshot(db, org.id)
    assert snapshot.subscription.item_stripe_id == "si_2"
    assert snapshot.max_seats == DEFAULT_MAX_SEATS


@pytest.mark.asyncio
async def test_subscription_for_unknown_organization_is_skipped(db):
    await BillingService(db).handle_event(subscription_event(uuid.uuid4()))

    assert await db.scalar(select(StripeSubscription)) is None


@pytest.mark.asyncio
async def test_checkout_and_customer_deleted(make, db):
    owner = await make.user(email="owner@example.com")
    org = await make.organization(owner)
    service = BillingService(db)

    await service.handle_event(
        {
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_1",
                    "customer": "cus_9",
                    "customer_details": {"email": "billing@example.com"},
                    "metadata": {"organizationId": str(org.id)},
                }
            },
        }
    )
    assert org.stripe_customer_id == "cus_9"
    assert org.billing_email == "billing@example.com"

    await service.handle_event({"type": "customer.deleted", "data": {"object": {"id": "cus_9"}}})
    refreshed = await db.scalar(select(Organization).where(Organization.id == org.id))
    assert refreshed.stripe_customer_id is None


@pytest.mark.asyncio
async def test_unknown_event_is_ignored(db):
    assert await BillingService(db).handle_event({"type": "invoice.paid", "data": {"object": {}}}) is False


# ---------------------------------------------------------------------------
# HTTP endpoint
# ---------------------------------------------------------------------------

def sign(payload: bytes, secret: str) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.mark.asyncio
async def test_signed_webhook_is_applied(client, make, session_factory, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    owner = await make.user()
    org = await make.organization(owner)
    payload = json.dumps(product_event("prod_team", 7)).encode()

    resp = await client.post(
        "/api/v1/stripe/webhooks",
        content=payload,
        headers={"Stripe-Signature": sign(payload, "whsec_test"), "Content-Type": "application/json"},
    )
    assert resp.status_code == 200, f"Webhook failed: {resp.text}"
    assert resp.json() == {"received": True}

    payload = json.dumps(subscription_event(org.id, items=[("si_1", "prod_team", 1)])).encode()
    resp = await client.post(
        "/api/v1/stripe/webhooks",
        content=payload,
        headers={"Stripe-Signature": sign(payload, "whsec_test"), "Content-Type": "application/json"},
    )
    assert resp.status_code == 200, f"Webhook failed: {resp.text}"

    async with session_factory() as fresh:
        snapshot = await load_seat_snapshot(fresh, org.id)
    assert snapshot.max_seats == 7


@pytest.mark.asyncio
async def test_bad_signature_is_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    payload = json.dumps(product_event("prod_team", 7)).encode()

    resp = await client.post(
        "/api/v1/stripe/webhooks",
        content=payload,
        headers={"Stripe-Signature": sign(payload, "whsec_other")},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_WEBHOOK"
