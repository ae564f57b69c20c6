from __future__ import annotations

from prometheus_client import Counter

payment_confirmations_total = Counter(
    "payment_confirmations_total",
    "Payment confirmation events handled, by outcome.",
    ["outcome"],
)
stripe_webhook_events_total = Counter(
    "stripe_webhook_events_total",
    "Verified Stripe webhook deliveries, by event type.",
    ["event_type"],
)
lesson_writes_denied_total = Counter(
    "lesson_writes_denied_total",
    "Lesson create/update/delete attempts rejected by the access policy.",
    ["reason"],
)
accounts_created_total = Counter(
    "accounts_created_total",
    "Accounts created lazily on first verified sign-in.",
)
