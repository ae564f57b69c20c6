from __future__ import annotations

import logging
from typing import Any

import stripe
from fastapi import APIRouter, HTTPException, Request, status

from .. import metrics, stripe_mode
from ..auth import StoreDep
from ..services import entitlement_service, premium_checkout_service

router = APIRouter(prefix="/webhooks", tags=["stripe-webhooks"])
logger = logging.getLogger(__name__)

_CONFIRMING_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}


def _as_dict(event: Any) -> dict[str, Any]:
    if isinstance(event, dict):
        return event
    to_dict = getattr(event, "to_dict", None) or getattr(event, "to_dict_recursive", None)
    if callable(to_dict):
        return to_dict()
    return dict(event)


@router.post("/stripe", status_code=status.HTTP_200_OK)
async def stripe_webhook(request: Request, store: StoreDep):
    try:
        secret = stripe_mode.resolve_webhook_secret()
    except stripe_mode.StripeConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stripe webhook secret missing",
        ) from exc

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature",
        )

    try:
        event = stripe.Webhook.construct_event(
            payload=payload.decode("utf-8"),
            sig_header=signature,
            secret=secret,
        )
    except ValueError as exc:
        logger.warning("Invalid Stripe payload: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        ) from exc
    except stripe.error.SignatureVerificationError as exc:  # type: ignore[attr-defined]
        logger.warning("Invalid Stripe signature: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        ) from exc

    event_data = _as_dict(event)
    event_id = str(event_data.get("id") or "")
    event_type = str(event_data.get("type") or "")
    data_object = (event_data.get("data") or {}).get("object") or {}
    metrics.stripe_webhook_events_total.labels(event_type=event_type or "unknown").inc()

    if event_type not in _CONFIRMING_EVENTS:
        logger.info("Unhandled Stripe event %s", event_type, extra={"event_id": event_id})
        return {"status": "ok"}

    confirmation = premium_checkout_service.confirmation_from_checkout_session(
        event_id, data_object
    )
    if confirmation is None:
        if premium_checkout_service.is_paid_session(data_object):
            outcome = entitlement_service.record_unmatched_payment(event_id, event_type=event_type)
            return {"status": "ok", "outcome": outcome.value}
        logger.info(
            "Checkout session event not paid yet",
            extra={"event_id": event_id, "event_type": event_type},
        )
        return {"status": "ok"}

    # Unresolved accounts are acknowledged so Stripe stops redelivering; the service logs them.
    result = await entitlement_service.apply_payment_confirmation(store.accounts, confirmation)
    return {"status": "ok", "outcome": result.outcome.value}
