from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, model_validator


class PaymentLookupKeys(BaseModel):
    account_id: Optional[UUID] = None
    subject_id: Optional[str] = None

    @model_validator(mode="after")
    def _require_one_key(self):
        if self.account_id is None and not self.subject_id:
            raise ValueError("payment confirmation needs account_id or subject_id")
        return self


class PaymentConfirmation(BaseModel):
    type: str = "payment_confirmed"
    event_reference: str
    lookup_keys: PaymentLookupKeys


class EntitlementOutcome(str, Enum):
    applied = "applied"
    already_premium = "already_premium"
    unresolved_account = "unresolved_account"


class EntitlementResult(BaseModel):
    outcome: EntitlementOutcome
    event_reference: str
    account_id: Optional[UUID] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is not EntitlementOutcome.unresolved_account


class CheckoutSessionResponse(BaseModel):
    url: str
    session_id: Optional[str] = None


class CheckoutVerifyResponse(BaseModel):
    session_id: str
    paid: bool
    status: str
    is_premium: bool
