from __future__ import annotations

from psycopg_pool import AsyncConnectionPool

from ..db import get_conn
from .accounts import AccountRepository
from .lessons import LessonRepository
from .ports import AccountRepoPort, LessonRepoPort, SocialRepoPort, StorePort
from .social import SocialRepository


class Store:
    """Repositories sharing one connection pool, handed to services per request."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self.pool = pool
        self.accounts = AccountRepository(pool)
        self.lessons = LessonRepository(pool)
        self.social = SocialRepository(pool)

    async def ping(self) -> None:
        async with get_conn(self.pool) as cur:
            await cur.execute("select 1")
            await cur.fetchone()


__all__ = [
    "AccountRepoPort",
    "AccountRepository",
    "LessonRepoPort",
    "LessonRepository",
    "SocialRepoPort",
    "SocialRepository",
    "Store",
    "StorePort",
]
