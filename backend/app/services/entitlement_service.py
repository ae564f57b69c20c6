"""Free -> premium transitions driven by confirmed payments.

The only transition is ``free -> premium``. Replays of the same confirmation
(or concurrent duplicates) converge on the same terminal state because the
directory update is conditional on the flag still being false.
"""

from __future__ import annotations

import logging

from .. import metrics
from ..repositories.ports import AccountRepoPort
from ..schemas import Account, EntitlementOutcome, EntitlementResult, PaymentConfirmation

logger = logging.getLogger(__name__)


async def _resolve_account(
    accounts: AccountRepoPort, confirmation: PaymentConfirmation
) -> Account | None:
    keys = confirmation.lookup_keys
    if keys.account_id is not None:
        account = await accounts.get_by_id(keys.account_id)
        if account:
            return account
    if keys.subject_id:
        return await accounts.get_by_subject(keys.subject_id)
    return None


async def apply_payment_confirmation(
    accounts: AccountRepoPort, confirmation: PaymentConfirmation
) -> EntitlementResult:
    account = await _resolve_account(accounts, confirmation)
    if account is None:
        logger.warning(
            "Payment confirmation did not match any account",
            extra={
                "event_reference": confirmation.event_reference,
                "lookup_account_id": str(confirmation.lookup_keys.account_id or ""),
                "lookup_subject_id": confirmation.lookup_keys.subject_id,
            },
        )
        return _record(confirmation, EntitlementOutcome.unresolved_account, None)

    if account.is_premium:
        return _record(confirmation, EntitlementOutcome.already_premium, account)

    changed = await accounts.mark_premium(account.id)
    outcome = EntitlementOutcome.applied if changed else EntitlementOutcome.already_premium
    return _record(confirmation, outcome, account)


def _record(
    confirmation: PaymentConfirmation,
    outcome: EntitlementOutcome,
    account: Account | None,
) -> EntitlementResult:
    metrics.payment_confirmations_total.labels(outcome=outcome.value).inc()
    if outcome is not EntitlementOutcome.unresolved_account:
        logger.info(
            "Payment confirmation handled: %s",
            outcome.value,
            extra={
                "event_reference": confirmation.event_reference,
                "account_id": str(account.id) if account else None,
            },
        )
    return EntitlementResult(
        outcome=outcome,
        event_reference=confirmation.event_reference,
        account_id=account.id if account else None,
    )


def record_unmatched_payment(
    event_reference: str, *, event_type: str | None = None
) -> EntitlementOutcome:
    """Account for a paid session that carries no account reference at all."""
    logger.warning(
        "Paid checkout session without account reference",
        extra={"event_reference": event_reference, "event_type": event_type},
    )
    metrics.payment_confirmations_total.labels(
        outcome=EntitlementOutcome.unresolved_account.value
    ).inc()
    return EntitlementOutcome.unresolved_account
