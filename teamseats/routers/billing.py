"""
Stripe webhook endpoint.

POST /stripe/webhooks - verify and apply a Stripe event
"""

from __future__ import annotations

import json
import logging

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.database import get_db
from teamseats.services.billing_service import BillingService, verify_webhook

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks", summary="Receive Stripe events")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    payload = await request.body()
    try:
        verify_webhook(payload, stripe_signature or "")
    except (ValueError, stripe.error.SignatureVerificationError) as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_WEBHOOK", "message": "Invalid Stripe webhook"},
        )

    event = json.loads(payload)
    handled = await BillingService(db).handle_event(event)
    if not handled:
        logger.debug("Ignored Stripe event type %s", event.get("type"))
    return {"received": True}
