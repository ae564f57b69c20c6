"""
Access decisions for lessons and the admin surface.

Every function here is pure: callers pass the acting account exactly as it was
read from the directory for this request (``None`` for anonymous visitors) and
translate the returned decision into a response. Nothing in this module raises
for a denied action.

Single-item and listing masking intentionally differ: a masked single lesson
keeps its real title, while a masked entry in a public listing also has its
title replaced.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping

from ..schemas import AccessTier, Account, Lesson, LessonListQuery, LessonView, Visibility

MASKED_TITLE = "Premium lesson"
MASKED_DESCRIPTION = "This lesson is available to premium members. Upgrade to read it."


class ReadDecision(str, Enum):
    full = "full"
    masked = "masked"
    denied = "denied"


class WriteDecision(str, Enum):
    allowed = "allowed"
    not_owner = "not_owner"
    not_premium = "not_premium"


class AdminDecision(str, Enum):
    allowed = "allowed"
    denied = "denied"


class WriteOperation(str, Enum):
    create = "create"
    update = "update"
    delete = "delete"


def is_owner(actor: Account | None, lesson: Lesson) -> bool:
    if actor is None:
        return False
    return actor.id == lesson.owner_id or actor.subject_id == lesson.owner_subject_id


def authorize_lesson_read(actor: Account | None, lesson: Lesson) -> ReadDecision:
    owner = is_owner(actor, lesson)
    if lesson.visibility is Visibility.private and not owner:
        if actor is None or not actor.is_admin:
            return ReadDecision.denied
    if lesson.access_tier is AccessTier.premium and not owner:
        if actor is None or not actor.is_premium:
            return ReadDecision.masked
    return ReadDecision.full


def _requests_premium(changes: Mapping[str, Any]) -> bool:
    tier = changes.get("access_tier")
    if tier is None:
        return False
    return AccessTier(tier) is AccessTier.premium


def authorize_lesson_write(
    actor: Account,
    lesson: Lesson | None,
    changes: Mapping[str, Any] | None = None,
    *,
    operation: WriteOperation,
) -> WriteDecision:
    """Decide a create/update/delete. ``lesson`` is ``None`` only for creates."""
    if operation is WriteOperation.delete:
        if lesson is not None and (is_owner(actor, lesson) or actor.is_admin):
            return WriteDecision.allowed
        return WriteDecision.not_owner

    if operation is WriteOperation.update and (lesson is None or not is_owner(actor, lesson)):
        return WriteDecision.not_owner

    if _requests_premium(changes or {}) and not actor.is_premium:
        return WriteDecision.not_premium
    return WriteDecision.allowed


def authorize_admin_action(actor: Account | None) -> AdminDecision:
    if actor is not None and actor.is_admin:
        return AdminDecision.allowed
    return AdminDecision.denied


def listing_tiers(actor: Account | None, query: LessonListQuery) -> set[AccessTier]:
    """Tiers a public listing may surface for this actor before masking."""
    if actor is not None and actor.is_premium:
        return {AccessTier.free, AccessTier.premium}
    if query.has_facet_filter:
        return {AccessTier.free, AccessTier.premium}
    return {AccessTier.free}


def search_tiers(actor: Account | None) -> set[AccessTier]:
    """Tiers whose real titles a text search may match for this actor.

    Masked rows hide their title, so matching on it would reveal the hidden text.
    """
    if actor is not None and actor.is_premium:
        return {AccessTier.free, AccessTier.premium}
    return {AccessTier.free}


def to_view(
    lesson: Lesson,
    actor: Account | None,
    decision: ReadDecision,
    *,
    listing: bool = False,
) -> LessonView:
    if decision is ReadDecision.denied:
        raise ValueError("denied lessons have no view")
    data = lesson.model_dump(exclude={"likes"})
    data["liked_by_me"] = actor is not None and actor.subject_id in lesson.likes
    if decision is ReadDecision.masked:
        data["description"] = MASKED_DESCRIPTION
        data["extended_description"] = None
        data["image_url"] = None
        data["masked"] = True
        if listing:
            data["title"] = MASKED_TITLE
    return LessonView.model_validate(data)


def view_lesson(actor: Account | None, lesson: Lesson) -> LessonView | None:
    decision = authorize_lesson_read(actor, lesson)
    if decision is ReadDecision.denied:
        return None
    return to_view(lesson, actor, decision)


def filter_listing(actor: Account | None, lessons: Iterable[Lesson]) -> list[LessonView]:
    """Shape a public listing: private rows never leak, premium rows arrive masked."""
    views: list[LessonView] = []
    for lesson in lessons:
        if lesson.visibility is not Visibility.public:
            continue
        decision = authorize_lesson_read(actor, lesson)
        if decision is ReadDecision.denied:
            continue
        views.append(to_view(lesson, actor, decision, listing=True))
    return views


__all__ = [
    "AdminDecision",
    "MASKED_DESCRIPTION",
    "MASKED_TITLE",
    "ReadDecision",
    "WriteDecision",
    "WriteOperation",
    "authorize_admin_action",
    "authorize_lesson_read",
    "authorize_lesson_write",
    "filter_listing",
    "is_owner",
    "listing_tiers",
    "search_tiers",
    "to_view",
    "view_lesson",
]
