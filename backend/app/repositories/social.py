from __future__ import annotations

from uuid import UUID

from psycopg_pool import AsyncConnectionPool

from ..db import get_conn
from ..schemas import Account, Comment, Report, ReportReason, ReportSummary


class SocialRepository:
    """Comments, favorites and reports hanging off a lesson."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def add_comment(self, lesson_id: UUID, author: Account, body: str) -> Comment:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                INSERT INTO app.comments (lesson_id, author_id, author_subject_id, body)
                VALUES (%s, %s, %s, %s)
                RETURNING id, lesson_id, author_id, author_subject_id, body, created_at
                """,
                (lesson_id, author.id, author.subject_id, body),
            )
            row = await cur.fetchone()
        return Comment.model_validate(
            {**row, "author_name": author.display_name, "author_photo_url": author.photo_url}
        )

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT c.id,
                       c.lesson_id,
                       c.author_id,
                       c.author_subject_id,
                       a.display_name AS author_name,
                       a.photo_url AS author_photo_url,
                       c.body,
                       c.created_at
                  FROM app.comments AS c
                  LEFT JOIN app.accounts AS a ON a.id = c.author_id
                 WHERE c.id = %s
                 LIMIT 1
                """,
                (comment_id,),
            )
            row = await cur.fetchone()
        return Comment.model_validate(row) if row else None

    async def list_comments(self, lesson_id: UUID) -> list[Comment]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT c.id,
                       c.lesson_id,
                       c.author_id,
                       c.author_subject_id,
                       a.display_name AS author_name,
                       a.photo_url AS author_photo_url,
                       c.body,
                       c.created_at
                  FROM app.comments AS c
                  LEFT JOIN app.accounts AS a ON a.id = c.author_id
                 WHERE c.lesson_id = %s
                 ORDER BY c.created_at ASC
                """,
                (lesson_id,),
            )
            rows = await cur.fetchall()
        return [Comment.model_validate(row) for row in rows]

    async def delete_comment(self, comment_id: UUID) -> bool:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                "DELETE FROM app.comments WHERE id = %s RETURNING id",
                (comment_id,),
            )
            row = await cur.fetchone()
        return row is not None

    async def toggle_favorite(self, account_id: UUID, lesson_id: UUID) -> bool:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                DELETE FROM app.favorites
                 WHERE account_id = %s
                   AND lesson_id = %s
                RETURNING id
                """,
                (account_id, lesson_id),
            )
            if await cur.fetchone():
                return False
            # The unique (account_id, lesson_id) constraint absorbs a concurrent double insert.
            await cur.execute(
                """
                INSERT INTO app.favorites (account_id, lesson_id)
                VALUES (%s, %s)
                ON CONFLICT (account_id, lesson_id) DO NOTHING
                """,
                (account_id, lesson_id),
            )
        return True

    async def list_favorite_lesson_ids(self, account_id: UUID) -> list[UUID]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT lesson_id
                  FROM app.favorites
                 WHERE account_id = %s
                 ORDER BY created_at DESC
                """,
                (account_id,),
            )
            rows = await cur.fetchall()
        return [row["lesson_id"] for row in rows]

    async def add_report(
        self,
        lesson_id: UUID,
        reporter_id: UUID,
        reason: ReportReason,
        details: str | None,
    ) -> Report:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                INSERT INTO app.reports (lesson_id, reporter_id, reason, details)
                VALUES (%s, %s, %s, %s)
                RETURNING id, lesson_id, reporter_id, reason, details, created_at
                """,
                (lesson_id, reporter_id, reason.value, details),
            )
            row = await cur.fetchone()
        return Report.model_validate(row)

    async def summarize_reports(self) -> list[ReportSummary]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT r.lesson_id,
                       l.title AS lesson_title,
                       count(*) AS report_count,
                       array_agg(DISTINCT r.reason) AS reasons,
                       max(r.created_at) AS latest_report_at
                  FROM app.reports AS r
                  JOIN app.lessons AS l ON l.id = r.lesson_id
                 GROUP BY r.lesson_id, l.title
                 ORDER BY count(*) DESC, max(r.created_at) DESC
                """
            )
            rows = await cur.fetchall()
        return [ReportSummary.model_validate(row) for row in rows]

    async def dismiss_reports(self, lesson_id: UUID) -> int:
        async with get_conn(self._pool) as cur:
            await cur.execute("DELETE FROM app.reports WHERE lesson_id = %s", (lesson_id,))
            return cur.rowcount

    async def count_reports(self) -> int:
        async with get_conn(self._pool) as cur:
            await cur.execute("SELECT count(*) AS total FROM app.reports")
            row = await cur.fetchone()
        return int(row["total"])
