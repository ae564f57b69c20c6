"""
Storage ports consumed by the access-control and entitlement services.

Implementations:
- ``repositories.accounts`` / ``lessons`` / ``social``: PostgreSQL via psycopg
- the in-memory fakes under ``tests/`` used by the API test-suite

Every method is a single awaitable store operation that is atomic for the
row it touches.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence
from uuid import UUID

from ..schemas import (
    AccessTier,
    Account,
    Comment,
    Lesson,
    LessonListQuery,
    Report,
    ReportReason,
    ReportSummary,
    Role,
    VerifiedIdentity,
)


class AccountRepoPort(Protocol):
    async def get_by_id(self, account_id: UUID) -> Account | None: ...

    async def get_by_subject(self, subject_id: str) -> Account | None: ...

    async def create(self, identity: VerifiedIdentity) -> Account:
        """Insert a new account; raises ``Conflict`` on subject id or email collisions."""
        ...

    async def update_profile(
        self,
        account_id: UUID,
        *,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> Account | None: ...

    async def mark_premium(self, account_id: UUID) -> bool:
        """Flip ``is_premium`` false -> true; returns False when nothing changed."""
        ...

    async def set_role(self, account_id: UUID, role: Role) -> Account | None: ...

    async def list_accounts(self, *, limit: int, offset: int) -> list[Account]: ...

    async def counts(self) -> dict[str, int]: ...


class LessonRepoPort(Protocol):
    async def create(self, owner: Account, fields: dict[str, Any]) -> Lesson: ...

    async def get(self, lesson_id: UUID) -> Lesson | None: ...

    async def update(self, lesson_id: UUID, changes: dict[str, Any]) -> Lesson | None: ...

    async def delete_cascade(self, lesson_id: UUID) -> bool:
        """Delete the lesson and every comment, favorite and report referencing it."""
        ...

    async def toggle_like(self, lesson_id: UUID, subject_id: str) -> tuple[bool, int] | None: ...

    async def list_public(
        self,
        query: LessonListQuery,
        *,
        tiers: Iterable[AccessTier],
        search_tiers: Iterable[AccessTier],
    ) -> list[Lesson]:
        """Public lessons in ``tiers``; ``query.q`` only matches rows in ``search_tiers``."""
        ...

    async def list_by_owner(self, owner_id: UUID) -> list[Lesson]: ...

    async def list_by_ids(self, lesson_ids: Sequence[UUID]) -> list[Lesson]: ...

    async def list_all(self, *, limit: int, offset: int) -> list[Lesson]: ...

    async def counts(self) -> dict[str, int]: ...


class SocialRepoPort(Protocol):
    async def add_comment(self, lesson_id: UUID, author: Account, body: str) -> Comment: ...

    async def get_comment(self, comment_id: UUID) -> Comment | None: ...

    async def list_comments(self, lesson_id: UUID) -> list[Comment]: ...

    async def delete_comment(self, comment_id: UUID) -> bool: ...

    async def toggle_favorite(self, account_id: UUID, lesson_id: UUID) -> bool: ...

    async def list_favorite_lesson_ids(self, account_id: UUID) -> list[UUID]: ...

    async def add_report(
        self,
        lesson_id: UUID,
        reporter_id: UUID,
        reason: ReportReason,
        details: str | None,
    ) -> Report: ...

    async def summarize_reports(self) -> list[ReportSummary]: ...

    async def dismiss_reports(self, lesson_id: UUID) -> int: ...

    async def count_reports(self) -> int: ...


class StorePort(Protocol):
    accounts: AccountRepoPort
    lessons: LessonRepoPort
    social: SocialRepoPort

    async def ping(self) -> None: ...
