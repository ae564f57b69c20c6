from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Response, status

from ..auth import CurrentAccount, OptionalCurrentAccount, StoreDep
from ..errors import ServiceError
from ..schemas import (
    Comment,
    CommentCreateRequest,
    CommentListResponse,
    FavoriteToggleResponse,
    LessonView,
    Report,
    ReportCreateRequest,
)
from ..services import social_service

router = APIRouter(prefix="/api", tags=["social"])


@router.post("/lessons/{lesson_id}/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(lesson_id: UUID, current: CurrentAccount, store: StoreDep):
    try:
        return await social_service.toggle_favorite(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.get("/favorites", response_model=List[LessonView])
async def my_favorites(current: CurrentAccount, store: StoreDep):
    return await social_service.list_favorites(store, current)


@router.get("/lessons/{lesson_id}/comments", response_model=CommentListResponse)
async def lesson_comments(
    lesson_id: UUID, store: StoreDep, current: OptionalCurrentAccount = None
):
    try:
        items = await social_service.list_comments(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return {"items": items}


@router.post(
    "/lessons/{lesson_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    lesson_id: UUID,
    payload: CommentCreateRequest,
    current: CurrentAccount,
    store: StoreDep,
):
    try:
        return await social_service.add_comment(store, current, lesson_id, payload)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: UUID, current: CurrentAccount, store: StoreDep):
    try:
        await social_service.delete_comment(store, current, comment_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/lessons/{lesson_id}/reports",
    response_model=Report,
    status_code=status.HTTP_201_CREATED,
)
async def report_lesson(
    lesson_id: UUID,
    payload: ReportCreateRequest,
    current: CurrentAccount,
    store: StoreDep,
):
    try:
        return await social_service.report_lesson(store, current, lesson_id, payload)
    except ServiceError as exc:
        raise exc.to_http() from exc
