from __future__ import annotations

import logging
from uuid import UUID

from ..errors import NotFound
from ..repositories.ports import StorePort
from ..schemas import AdminStats, LessonView, ReportSummary
from . import access_control
from .access_control import ReadDecision

logger = logging.getLogger(__name__)


async def stats(store: StorePort) -> AdminStats:
    account_counts = await store.accounts.counts()
    lesson_counts = await store.lessons.counts()
    open_reports = await store.social.count_reports()
    return AdminStats(**account_counts, **lesson_counts, open_reports=open_reports)


async def list_lessons(store: StorePort, *, limit: int, offset: int) -> list[LessonView]:
    lessons = await store.lessons.list_all(limit=limit, offset=offset)
    # Moderators review the stored content as written.
    return [access_control.to_view(lesson, None, ReadDecision.full) for lesson in lessons]


async def list_reports(store: StorePort) -> list[ReportSummary]:
    return await store.social.summarize_reports()


async def dismiss_reports(store: StorePort, lesson_id: UUID) -> int:
    if await store.lessons.get(lesson_id) is None:
        raise NotFound("lesson not found")
    removed = await store.social.dismiss_reports(lesson_id)
    logger.info(
        "Reports dismissed",
        extra={"lesson_id": str(lesson_id), "removed": removed},
    )
    return removed
