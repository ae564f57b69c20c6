from __future__ import annotations

import logging
from uuid import UUID

from ..errors import NotFound, NotOwner
from ..repositories.ports import StorePort
from ..schemas import (
    Account,
    Comment,
    CommentCreateRequest,
    FavoriteToggleResponse,
    LessonView,
    Report,
    ReportCreateRequest,
)
from . import access_control
from .lessons_service import fresh_account, readable_lesson

logger = logging.getLogger(__name__)


async def toggle_favorite(
    store: StorePort, actor: Account, lesson_id: UUID
) -> FavoriteToggleResponse:
    await readable_lesson(store, actor, lesson_id)
    favorited = await store.social.toggle_favorite(actor.id, lesson_id)
    return FavoriteToggleResponse(favorited=favorited)


async def list_favorites(store: StorePort, actor: Account) -> list[LessonView]:
    lesson_ids = await store.social.list_favorite_lesson_ids(actor.id)
    lessons = await store.lessons.list_by_ids(lesson_ids)
    views: list[LessonView] = []
    for lesson in lessons:
        # A favorite may outlive the viewer's access (lesson made private later).
        view = access_control.view_lesson(actor, lesson)
        if view is not None:
            views.append(view)
    return views


async def list_comments(
    store: StorePort, actor: Account | None, lesson_id: UUID
) -> list[Comment]:
    await readable_lesson(store, actor, lesson_id)
    return await store.social.list_comments(lesson_id)


async def add_comment(
    store: StorePort,
    actor: Account,
    lesson_id: UUID,
    payload: CommentCreateRequest,
) -> Comment:
    await readable_lesson(store, actor, lesson_id)
    return await store.social.add_comment(lesson_id, actor, payload.body)


async def delete_comment(store: StorePort, actor: Account, comment_id: UUID) -> None:
    comment = await store.social.get_comment(comment_id)
    if comment is None:
        raise NotFound("comment not found")
    actor = await fresh_account(store, actor)
    if comment.author_id != actor.id and not actor.is_admin:
        raise NotOwner("only the author can delete this comment")
    await store.social.delete_comment(comment_id)


async def report_lesson(
    store: StorePort,
    actor: Account,
    lesson_id: UUID,
    payload: ReportCreateRequest,
) -> Report:
    await readable_lesson(store, actor, lesson_id)
    report = await store.social.add_report(lesson_id, actor.id, payload.reason, payload.details)
    logger.info(
        "Lesson reported",
        extra={"lesson_id": str(lesson_id), "reason": payload.reason.value},
    )
    return report
