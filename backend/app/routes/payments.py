from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from ..auth import CurrentAccount
from ..errors import ServiceError
from ..schemas import CheckoutSessionResponse, CheckoutVerifyResponse
from ..services import premium_checkout_service

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post(
    "/checkout",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_checkout(current: CurrentAccount) -> CheckoutSessionResponse:
    try:
        return await premium_checkout_service.create_premium_checkout(current)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.get("/verify", response_model=CheckoutVerifyResponse)
async def verify_checkout(
    current: CurrentAccount,
    session_id: str = Query(min_length=1, max_length=255),
) -> CheckoutVerifyResponse:
    if not session_id.startswith("cs_"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid session id")
    try:
        return await premium_checkout_service.verify_checkout_session(current, session_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
