from __future__ import annotations

from fastapi import APIRouter

from ..auth import CurrentAccount, StoreDep, VerifiedIdentityDep
from ..errors import ServiceError
from ..schemas import AccountResponse, ProfileUpdateRequest
from ..services import accounts_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/sync", response_model=AccountResponse)
async def sync_user(identity: VerifiedIdentityDep, store: StoreDep):
    try:
        account = await accounts_service.sync_profile(store.accounts, identity)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return AccountResponse.model_validate(account.model_dump())


@router.get("/me", response_model=AccountResponse)
async def read_me(current: CurrentAccount):
    return AccountResponse.model_validate(current.model_dump())


@router.patch("/me", response_model=AccountResponse)
async def update_me(payload: ProfileUpdateRequest, current: CurrentAccount, store: StoreDep):
    try:
        account = await accounts_service.update_profile(
            store.accounts,
            current.id,
            display_name=payload.display_name,
            photo_url=payload.photo_url,
        )
    except ServiceError as exc:
        raise exc.to_http() from exc
    return AccountResponse.model_validate(account.model_dump())
