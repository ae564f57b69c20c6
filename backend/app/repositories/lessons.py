from __future__ import annotations

from typing import Any, Iterable, Sequence
from uuid import UUID

from psycopg_pool import AsyncConnectionPool

from ..db import get_conn
from ..schemas import AccessTier, Account, Lesson, LessonListQuery, LessonSort, Visibility

_LESSON_COLUMNS = """
    id,
    title,
    description,
    extended_description,
    category,
    emotional_tone,
    image_url,
    visibility,
    access_tier,
    owner_id,
    owner_subject_id,
    likes,
    likes_count,
    created_at,
    updated_at
"""

_EDITABLE_FIELDS = (
    "title",
    "description",
    "extended_description",
    "category",
    "emotional_tone",
    "image_url",
    "visibility",
    "access_tier",
)

_SORT_CLAUSES = {
    LessonSort.newest: "created_at DESC, id",
    LessonSort.most_liked: "likes_count DESC, created_at DESC, id",
}


def _db_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class LessonRepository:
    """Lesson documents in ``app.lessons``; satellites live in ``SocialRepository``."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def create(self, owner: Account, fields: dict[str, Any]) -> Lesson:
        values = {key: _db_value(fields.get(key)) for key in _EDITABLE_FIELDS}
        values["visibility"] = values["visibility"] or Visibility.public.value
        values["access_tier"] = values["access_tier"] or AccessTier.free.value
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                INSERT INTO app.lessons (
                    title,
                    description,
                    extended_description,
                    category,
                    emotional_tone,
                    image_url,
                    visibility,
                    access_tier,
                    owner_id,
                    owner_subject_id
                )
                VALUES (
                    %(title)s,
                    %(description)s,
                    %(extended_description)s,
                    %(category)s,
                    %(emotional_tone)s,
                    %(image_url)s,
                    %(visibility)s,
                    %(access_tier)s,
                    %(owner_id)s,
                    %(owner_subject_id)s
                )
                RETURNING {_LESSON_COLUMNS}
                """,
                {**values, "owner_id": owner.id, "owner_subject_id": owner.subject_id},
            )
            row = await cur.fetchone()
        return Lesson.model_validate(row)

    async def get(self, lesson_id: UUID) -> Lesson | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"SELECT {_LESSON_COLUMNS} FROM app.lessons WHERE id = %s LIMIT 1",
                (lesson_id,),
            )
            row = await cur.fetchone()
        return Lesson.model_validate(row) if row else None

    async def update(self, lesson_id: UUID, changes: dict[str, Any]) -> Lesson | None:
        assignments = [key for key in _EDITABLE_FIELDS if key in changes]
        if not assignments:
            return await self.get(lesson_id)
        set_clause = ",\n                       ".join(f"{key} = %({key})s" for key in assignments)
        params = {key: _db_value(changes[key]) for key in assignments}
        params["lesson_id"] = lesson_id
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                UPDATE app.lessons
                   SET {set_clause},
                       updated_at = now()
                 WHERE id = %(lesson_id)s
                RETURNING {_LESSON_COLUMNS}
                """,
                params,
            )
            row = await cur.fetchone()
        return Lesson.model_validate(row) if row else None

    async def delete_cascade(self, lesson_id: UUID) -> bool:
        async with self._pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute("DELETE FROM app.comments WHERE lesson_id = %s", (lesson_id,))
                    await cur.execute("DELETE FROM app.favorites WHERE lesson_id = %s", (lesson_id,))
                    await cur.execute("DELETE FROM app.reports WHERE lesson_id = %s", (lesson_id,))
                    await cur.execute(
                        "DELETE FROM app.lessons WHERE id = %s RETURNING id",
                        (lesson_id,),
                    )
                    row = await cur.fetchone()
        return row is not None

    async def toggle_like(self, lesson_id: UUID, subject_id: str) -> tuple[bool, int] | None:
        # Set and count are rewritten in one statement; the check constraint rejects drift.
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                UPDATE app.lessons
                   SET likes = CASE
                           WHEN %(subject)s::text = ANY(likes) THEN array_remove(likes, %(subject)s::text)
                           ELSE array_append(likes, %(subject)s::text)
                       END,
                       likes_count = cardinality(CASE
                           WHEN %(subject)s::text = ANY(likes) THEN array_remove(likes, %(subject)s::text)
                           ELSE array_append(likes, %(subject)s::text)
                       END)
                 WHERE id = %(lesson_id)s
                RETURNING %(subject)s::text = ANY(likes) AS liked, likes_count
                """,
                {"subject": subject_id, "lesson_id": lesson_id},
            )
            row = await cur.fetchone()
        if not row:
            return None
        return bool(row["liked"]), int(row["likes_count"])

    async def list_public(
        self,
        query: LessonListQuery,
        *,
        tiers: Iterable[AccessTier],
        search_tiers: Iterable[AccessTier],
    ) -> list[Lesson]:
        conditions = ["visibility = 'public'", "access_tier = ANY(%(tiers)s)"]
        params: dict[str, Any] = {
            "tiers": [_db_value(tier) for tier in tiers],
            "limit": query.limit,
            "offset": query.offset,
        }
        if query.category is not None:
            conditions.append("category = %(category)s")
            params["category"] = query.category.value
        if query.emotional_tone is not None:
            conditions.append("emotional_tone = %(emotional_tone)s")
            params["emotional_tone"] = query.emotional_tone.value
        if query.q:
            conditions.append(
                "(access_tier = ANY(%(search_tiers)s) AND title ILIKE %(q)s ESCAPE '\\')"
            )
            params["search_tiers"] = [_db_value(tier) for tier in search_tiers]
            params["q"] = f"%{_escape_like(query.q)}%"
        where_clause = " AND ".join(conditions)
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                SELECT {_LESSON_COLUMNS}
                  FROM app.lessons
                 WHERE {where_clause}
                 ORDER BY {_SORT_CLAUSES[query.sort]}
                 LIMIT %(limit)s OFFSET %(offset)s
                """,
                params,
            )
            rows = await cur.fetchall()
        return [Lesson.model_validate(row) for row in rows]

    async def list_by_owner(self, owner_id: UUID) -> list[Lesson]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                SELECT {_LESSON_COLUMNS}
                  FROM app.lessons
                 WHERE owner_id = %s
                 ORDER BY created_at DESC
                """,
                (owner_id,),
            )
            rows = await cur.fetchall()
        return [Lesson.model_validate(row) for row in rows]

    async def list_by_ids(self, lesson_ids: Sequence[UUID]) -> list[Lesson]:
        if not lesson_ids:
            return []
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                SELECT {_LESSON_COLUMNS}
                  FROM app.lessons
                 WHERE id = ANY(%s)
                 ORDER BY created_at DESC
                """,
                (list(lesson_ids),),
            )
            rows = await cur.fetchall()
        return [Lesson.model_validate(row) for row in rows]

    async def list_all(self, *, limit: int, offset: int) -> list[Lesson]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                SELECT {_LESSON_COLUMNS}
                  FROM app.lessons
                 ORDER BY created_at DESC
                 LIMIT %s OFFSET %s
                """,
                (limit, offset),
            )
            rows = await cur.fetchall()
        return [Lesson.model_validate(row) for row in rows]

    async def counts(self) -> dict[str, int]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT count(*) AS lessons,
                       count(*) FILTER (WHERE visibility = 'public') AS public_lessons,
                       count(*) FILTER (WHERE access_tier = 'premium') AS premium_lessons
                  FROM app.lessons
                """
            )
            row = await cur.fetchone()
        return {key: int(row[key]) for key in ("lessons", "public_lessons", "premium_lessons")}
