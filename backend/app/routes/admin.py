from typing import List
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from ..auth import StoreDep
from ..errors import ServiceError
from ..permissions import AdminAccount
from ..schemas import (
    AccountListResponse,
    AccountResponse,
    AdminStats,
    LessonView,
    ReportSummaryListResponse,
    RoleUpdateRequest,
)
from ..services import accounts_service, admin_service, lessons_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStats)
async def admin_stats(current: AdminAccount, store: StoreDep):
    return await admin_service.stats(store)


@router.get("/users", response_model=AccountListResponse)
async def admin_users(
    current: AdminAccount,
    store: StoreDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    accounts = await store.accounts.list_accounts(limit=limit, offset=offset)
    return {"items": [AccountResponse.model_validate(item.model_dump()) for item in accounts]}


@router.patch("/users/{account_id}/role", response_model=AccountResponse)
async def admin_set_role(
    account_id: UUID,
    payload: RoleUpdateRequest,
    current: AdminAccount,
    store: StoreDep,
):
    try:
        account = await accounts_service.set_role(store.accounts, account_id, payload.role)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return AccountResponse.model_validate(account.model_dump())


@router.get("/lessons", response_model=List[LessonView])
async def admin_lessons(
    current: AdminAccount,
    store: StoreDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    return await admin_service.list_lessons(store, limit=limit, offset=offset)


@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_lesson(lesson_id: UUID, current: AdminAccount, store: StoreDep):
    try:
        await lessons_service.delete_lesson(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/reports", response_model=ReportSummaryListResponse)
async def admin_reports(current: AdminAccount, store: StoreDep):
    items = await admin_service.list_reports(store)
    return {"items": items}


@router.delete("/reports/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_dismiss_reports(lesson_id: UUID, current: AdminAccount, store: StoreDep):
    try:
        await admin_service.dismiss_reports(store, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
