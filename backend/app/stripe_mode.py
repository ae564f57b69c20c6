from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import settings


class StripeMode(str, Enum):
    test = "test"
    live = "live"


class StripeConfigurationError(RuntimeError):
    """Raised when Stripe env/config cannot be resolved safely."""


@dataclass
class StripeContext:
    secret_key: str
    mode: StripeMode


def resolve_stripe_context() -> StripeContext:
    secret_key = (settings.stripe_secret_key or "").strip()
    if not secret_key:
        raise StripeConfigurationError("Stripe secret key is missing (set STRIPE_SECRET_KEY)")
    if secret_key.startswith(("sk_test_", "rk_test_")):
        mode = StripeMode.test
    elif secret_key.startswith(("sk_live_", "rk_live_")):
        mode = StripeMode.live
    else:
        raise StripeConfigurationError("STRIPE_SECRET_KEY must start with sk_test_ or sk_live_")
    return StripeContext(secret_key=secret_key, mode=mode)


def resolve_webhook_secret() -> str:
    secret = (settings.stripe_webhook_secret or "").strip()
    if not secret:
        raise StripeConfigurationError("STRIPE_WEBHOOK_SECRET missing")
    return secret


__all__ = [
    "StripeConfigurationError",
    "StripeContext",
    "StripeMode",
    "resolve_stripe_context",
    "resolve_webhook_secret",
]
