from __future__ import annotations

from uuid import UUID

from psycopg import errors
from psycopg_pool import AsyncConnectionPool

from ..db import get_conn
from ..errors import Conflict
from ..schemas import Account, Role, VerifiedIdentity

_ACCOUNT_COLUMNS = """
    id,
    subject_id,
    email,
    display_name,
    photo_url,
    role,
    is_premium,
    created_at,
    updated_at
"""


class AccountRepository:
    """User directory backed by ``app.accounts``."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def get_by_id(self, account_id: UUID) -> Account | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM app.accounts WHERE id = %s LIMIT 1",
                (account_id,),
            )
            row = await cur.fetchone()
        return Account.model_validate(row) if row else None

    async def get_by_subject(self, subject_id: str) -> Account | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM app.accounts WHERE subject_id = %s LIMIT 1",
                (subject_id,),
            )
            row = await cur.fetchone()
        return Account.model_validate(row) if row else None

    async def create(self, identity: VerifiedIdentity) -> Account:
        try:
            async with get_conn(self._pool) as cur:
                await cur.execute(
                    f"""
                    INSERT INTO app.accounts (subject_id, email, display_name, photo_url)
                    VALUES (%s, %s, %s, %s)
                    RETURNING {_ACCOUNT_COLUMNS}
                    """,
                    (
                        identity.subject_id,
                        identity.email.lower(),
                        identity.display_name,
                        identity.photo_url,
                    ),
                )
                row = await cur.fetchone()
        except errors.UniqueViolation as exc:
            raise Conflict("account already exists") from exc
        return Account.model_validate(row)

    async def update_profile(
        self,
        account_id: UUID,
        *,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> Account | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                UPDATE app.accounts
                   SET display_name = COALESCE(%s, display_name),
                       photo_url = COALESCE(%s, photo_url),
                       updated_at = now()
                 WHERE id = %s
                RETURNING {_ACCOUNT_COLUMNS}
                """,
                (display_name, photo_url, account_id),
            )
            row = await cur.fetchone()
        return Account.model_validate(row) if row else None

    async def mark_premium(self, account_id: UUID) -> bool:
        # Conditional on the current value so redelivered events never write twice.
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                UPDATE app.accounts
                   SET is_premium = true,
                       updated_at = now()
                 WHERE id = %s
                   AND is_premium = false
                RETURNING id
                """,
                (account_id,),
            )
            row = await cur.fetchone()
        return row is not None

    async def set_role(self, account_id: UUID, role: Role) -> Account | None:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                UPDATE app.accounts
                   SET role = %s,
                       updated_at = now()
                 WHERE id = %s
                RETURNING {_ACCOUNT_COLUMNS}
                """,
                (role.value, account_id),
            )
            row = await cur.fetchone()
        return Account.model_validate(row) if row else None

    async def list_accounts(self, *, limit: int, offset: int) -> list[Account]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                f"""
                SELECT {_ACCOUNT_COLUMNS}
                  FROM app.accounts
                 ORDER BY created_at DESC
                 LIMIT %s OFFSET %s
                """,
                (limit, offset),
            )
            rows = await cur.fetchall()
        return [Account.model_validate(row) for row in rows]

    async def counts(self) -> dict[str, int]:
        async with get_conn(self._pool) as cur:
            await cur.execute(
                """
                SELECT count(*) AS accounts,
                       count(*) FILTER (WHERE is_premium) AS premium_accounts
                  FROM app.accounts
                """
            )
            row = await cur.fetchone()
        return {
            "accounts": int(row["accounts"]),
            "premium_accounts": int(row["premium_accounts"]),
        }
