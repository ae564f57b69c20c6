from __future__ import annotations

from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from ..auth import CurrentAccount, OptionalCurrentAccount, StoreDep
from ..errors import ServiceError
from ..schemas import (
    LessonCreateRequest,
    LessonListQuery,
    LessonListResponse,
    LessonUpdateRequest,
    LessonView,
    LikeToggleResponse,
)
from ..services import lessons_service

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.get("", response_model=LessonListResponse)
async def list_lessons(
    query: Annotated[LessonListQuery, Query()],
    store: StoreDep,
    current: OptionalCurrentAccount = None,
):
    return await lessons_service.list_public_lessons(store, current, query)


@router.post("", response_model=LessonView, status_code=status.HTTP_201_CREATED)
async def create_lesson(payload: LessonCreateRequest, current: CurrentAccount, store: StoreDep):
    try:
        return await lessons_service.create_lesson(store, current, payload)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.get("/mine", response_model=List[LessonView])
async def my_lessons(current: CurrentAccount, store: StoreDep):
    return await lessons_service.list_own_lessons(store, current)


@router.get("/{lesson_id}", response_model=LessonView)
async def get_lesson(lesson_id: UUID, store: StoreDep, current: OptionalCurrentAccount = None):
    try:
        return await lessons_service.get_lesson(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.patch("/{lesson_id}", response_model=LessonView)
async def update_lesson(
    lesson_id: UUID,
    payload: LessonUpdateRequest,
    current: CurrentAccount,
    store: StoreDep,
):
    try:
        return await lessons_service.update_lesson(store, current, lesson_id, payload)
    except ServiceError as exc:
        raise exc.to_http() from exc


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(lesson_id: UUID, current: CurrentAccount, store: StoreDep):
    try:
        await lessons_service.delete_lesson(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{lesson_id}/like", response_model=LikeToggleResponse)
async def toggle_like(lesson_id: UUID, current: CurrentAccount, store: StoreDep):
    try:
        return await lessons_service.toggle_like(store, current, lesson_id)
    except ServiceError as exc:
        raise exc.to_http() from exc
