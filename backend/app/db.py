from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from psycopg import AsyncCursor
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def create_pool(conninfo: str | None = None) -> AsyncConnectionPool:
    """Build an unopened pool; the application lifespan opens and closes it."""
    return AsyncConnectionPool(
        conninfo=conninfo or settings.database_url,
        min_size=settings.database_pool_min,
        max_size=settings.database_pool_max,
        kwargs={"row_factory": dict_row},
        open=False,
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncCursor]:
    # The pool commits on clean exit and rolls back when the block raises.
    async with pool.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            yield cur


async def apply_migrations(
    pool: AsyncConnectionPool, directory: Path | None = None
) -> list[str]:
    applied: list[str] = []
    root = directory or MIGRATIONS_DIR
    async with pool.connection() as conn:
        for path in sorted(root.glob("*.sql")):
            await conn.execute(path.read_text(encoding="utf-8"))
            applied.append(path.name)
        await conn.commit()
    logger.info("Applied %d migration files", len(applied), extra={"files": applied})
    return applied


__all__ = ["MIGRATIONS_DIR", "apply_migrations", "create_pool", "get_conn"]
