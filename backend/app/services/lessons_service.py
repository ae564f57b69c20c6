from __future__ import annotations

import logging
from uuid import UUID

from .. import metrics
from ..errors import InvalidCredential, NotFound, NotOwner, NotPremium
from ..repositories.ports import StorePort
from ..schemas import (
    Account,
    Lesson,
    LessonCreateRequest,
    LessonListQuery,
    LessonListResponse,
    LessonUpdateRequest,
    LessonView,
    LikeToggleResponse,
)
from . import access_control
from .access_control import ReadDecision, WriteDecision, WriteOperation

logger = logging.getLogger(__name__)

LESSON_NOT_FOUND = "lesson not found"


async def fresh_account(store: StorePort, actor: Account) -> Account:
    """Re-read the actor so role and premium reflect the directory right now."""
    current = await store.accounts.get_by_id(actor.id)
    if current is None:
        raise InvalidCredential("account no longer exists")
    return current


def _raise_write_denied(decision: WriteDecision, lesson_id: UUID | None) -> None:
    metrics.lesson_writes_denied_total.labels(reason=decision.value).inc()
    logger.info(
        "Lesson write denied: %s",
        decision.value,
        extra={"lesson_id": str(lesson_id) if lesson_id else None},
    )
    if decision is WriteDecision.not_premium:
        raise NotPremium("premium membership is required to publish premium lessons")
    raise NotOwner("only the lesson owner can change this lesson")


async def readable_lesson(
    store: StorePort, actor: Account | None, lesson_id: UUID
) -> tuple[Lesson, ReadDecision]:
    lesson = await store.lessons.get(lesson_id)
    if lesson is None:
        raise NotFound(LESSON_NOT_FOUND)
    decision = access_control.authorize_lesson_read(actor, lesson)
    if decision is ReadDecision.denied:
        # Private lessons answer exactly like missing ones.
        raise NotFound(LESSON_NOT_FOUND)
    return lesson, decision


async def create_lesson(
    store: StorePort, actor: Account, payload: LessonCreateRequest
) -> LessonView:
    actor = await fresh_account(store, actor)
    fields = payload.model_dump()
    decision = access_control.authorize_lesson_write(
        actor, None, fields, operation=WriteOperation.create
    )
    if decision is not WriteDecision.allowed:
        _raise_write_denied(decision, None)
    lesson = await store.lessons.create(actor, fields)
    logger.info(
        "Lesson created",
        extra={"lesson_id": str(lesson.id), "access_tier": lesson.access_tier.value},
    )
    return access_control.to_view(lesson, actor, ReadDecision.full)


async def get_lesson(store: StorePort, actor: Account | None, lesson_id: UUID) -> LessonView:
    lesson, decision = await readable_lesson(store, actor, lesson_id)
    return access_control.to_view(lesson, actor, decision)


async def list_public_lessons(
    store: StorePort, actor: Account | None, query: LessonListQuery
) -> LessonListResponse:
    tiers = access_control.listing_tiers(actor, query)
    lessons = await store.lessons.list_public(
        query, tiers=tiers, search_tiers=access_control.search_tiers(actor)
    )
    return LessonListResponse(
        items=access_control.filter_listing(actor, lessons),
        limit=query.limit,
        offset=query.offset,
    )


async def list_own_lessons(store: StorePort, actor: Account) -> list[LessonView]:
    lessons = await store.lessons.list_by_owner(actor.id)
    return [access_control.to_view(lesson, actor, ReadDecision.full) for lesson in lessons]


async def update_lesson(
    store: StorePort,
    actor: Account,
    lesson_id: UUID,
    payload: LessonUpdateRequest,
) -> LessonView:
    actor = await fresh_account(store, actor)
    lesson, _ = await readable_lesson(store, actor, lesson_id)
    changes = payload.changes()
    decision = access_control.authorize_lesson_write(
        actor, lesson, changes, operation=WriteOperation.update
    )
    if decision is not WriteDecision.allowed:
        _raise_write_denied(decision, lesson_id)
    updated = await store.lessons.update(lesson_id, changes)
    if updated is None:
        raise NotFound(LESSON_NOT_FOUND)
    return access_control.to_view(updated, actor, ReadDecision.full)


async def delete_lesson(store: StorePort, actor: Account, lesson_id: UUID) -> None:
    actor = await fresh_account(store, actor)
    lesson, _ = await readable_lesson(store, actor, lesson_id)
    decision = access_control.authorize_lesson_write(
        actor, lesson, operation=WriteOperation.delete
    )
    if decision is not WriteDecision.allowed:
        _raise_write_denied(decision, lesson_id)
    deleted = await store.lessons.delete_cascade(lesson_id)
    if not deleted:
        raise NotFound(LESSON_NOT_FOUND)
    logger.info(
        "Lesson deleted",
        extra={
            "lesson_id": str(lesson_id),
            "by_admin": actor.is_admin and not access_control.is_owner(actor, lesson),
        },
    )


async def toggle_like(store: StorePort, actor: Account, lesson_id: UUID) -> LikeToggleResponse:
    await readable_lesson(store, actor, lesson_id)
    result = await store.lessons.toggle_like(lesson_id, actor.subject_id)
    if result is None:
        raise NotFound(LESSON_NOT_FOUND)
    liked, likes_count = result
    return LikeToggleResponse(liked=liked, likes_count=likes_count)
