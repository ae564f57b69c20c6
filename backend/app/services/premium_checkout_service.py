from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import stripe
from starlette.concurrency import run_in_threadpool

from .. import stripe_mode
from ..config import settings
from ..errors import Conflict, NotFound, PaymentConfigError, PaymentProviderError
from ..schemas import (
    Account,
    CheckoutSessionResponse,
    CheckoutVerifyResponse,
    PaymentConfirmation,
    PaymentLookupKeys,
)

logger = logging.getLogger(__name__)

RETURN_PATH = "payment/success?session_id={CHECKOUT_SESSION_ID}"
CANCEL_PATH = "payment/cancel"

_PAID_STATUSES = {"paid", "no_payment_required"}


def _default_checkout_urls() -> tuple[str, str]:
    base = (settings.client_url or "").rstrip("/")
    success_http = f"{base}/{RETURN_PATH}" if base else RETURN_PATH
    cancel_http = f"{base}/{CANCEL_PATH}" if base else CANCEL_PATH
    success_url = settings.checkout_success_url or success_http
    cancel_url = settings.checkout_cancel_url or cancel_http
    return success_url, cancel_url


def _require_stripe() -> None:
    try:
        context = stripe_mode.resolve_stripe_context()
    except stripe_mode.StripeConfigurationError as exc:
        raise PaymentConfigError(str(exc)) from exc
    stripe.api_key = context.secret_key


def checkout_metadata(account: Account) -> dict[str, str]:
    """Lookup keys the payment webhook uses to find the account again."""
    return {
        "account_id": str(account.id),
        "subject_id": account.subject_id,
        "checkout_type": "premium_upgrade",
    }


async def create_premium_checkout(account: Account) -> CheckoutSessionResponse:
    if account.is_premium:
        raise Conflict("account is already premium")
    _require_stripe()

    success_url, cancel_url = _default_checkout_urls()
    metadata = checkout_metadata(account)
    checkout_kwargs: dict[str, Any] = {
        "mode": "payment",
        "customer_email": account.email,
        "client_reference_id": str(account.id),
        "line_items": [
            {
                "price_data": {
                    "currency": settings.premium_currency,
                    "product_data": {"name": settings.premium_product_name},
                    "unit_amount": settings.premium_price_cents,
                },
                "quantity": 1,
            }
        ],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_intent_data": {"metadata": metadata},
    }

    try:
        session = await run_in_threadpool(lambda: stripe.checkout.Session.create(**checkout_kwargs))
    except stripe.error.StripeError as exc:  # type: ignore[attr-defined]
        logger.warning("Stripe checkout creation failed: %s", exc)
        raise PaymentProviderError("Failed to create Stripe checkout session") from exc

    url = session.get("url")
    if not isinstance(url, str) or not url:
        raise PaymentProviderError("Stripe session missing checkout url")

    logger.info(
        "Premium checkout session created",
        extra={"session_id": session.get("id"), "account_id": str(account.id)},
    )
    return CheckoutSessionResponse(url=url, session_id=session.get("id"))


async def verify_checkout_session(account: Account, session_id: str) -> CheckoutVerifyResponse:
    """Report a session's payment state; entitlement changes only happen via the webhook."""
    _require_stripe()
    try:
        session = await run_in_threadpool(lambda: stripe.checkout.Session.retrieve(session_id))
    except stripe.error.InvalidRequestError as exc:  # type: ignore[attr-defined]
        raise NotFound("checkout session not found") from exc
    except stripe.error.StripeError as exc:  # type: ignore[attr-defined]
        raise PaymentProviderError("Failed to load Stripe checkout session") from exc

    metadata = session.get("metadata") or {}
    owner_id = metadata.get("account_id") or session.get("client_reference_id")
    if owner_id and str(owner_id) != str(account.id):
        raise NotFound("checkout session not found")

    payment_status = str(session.get("payment_status") or "unpaid")
    return CheckoutVerifyResponse(
        session_id=session_id,
        paid=payment_status in _PAID_STATUSES,
        status=str(session.get("status") or "open"),
        is_premium=account.is_premium,
    )


def is_paid_session(session: dict[str, Any]) -> bool:
    return str(session.get("payment_status") or "") in _PAID_STATUSES


def confirmation_from_checkout_session(
    event_id: str, session: dict[str, Any]
) -> PaymentConfirmation | None:
    """Translate a paid Checkout Session into a payment confirmation, if it names an account."""
    if not is_paid_session(session):
        return None
    metadata = session.get("metadata") if isinstance(session.get("metadata"), dict) else {}
    raw_account_id = metadata.get("account_id") or session.get("client_reference_id")
    subject_id = metadata.get("subject_id") or None
    account_id: UUID | None = None
    if raw_account_id:
        try:
            account_id = UUID(str(raw_account_id))
        except ValueError:
            logger.warning("Ignoring malformed account_id in checkout metadata: %s", raw_account_id)
    if account_id is None and not subject_id:
        return None
    return PaymentConfirmation(
        event_reference=event_id,
        lookup_keys=PaymentLookupKeys(account_id=account_id, subject_id=subject_id),
    )
