from __future__ import annotations

import logging
from uuid import UUID

from .. import metrics
from ..errors import Conflict, NotFound
from ..repositories.ports import AccountRepoPort
from ..schemas import Account, Role, VerifiedIdentity

logger = logging.getLogger(__name__)


async def identify(accounts: AccountRepoPort, identity: VerifiedIdentity) -> Account:
    """Resolve a verified subject to its account, creating it on first sight.

    Two first sign-ins racing for the same subject both reach ``create``; the
    directory's unique constraints let exactly one win and the other re-reads.
    """
    existing = await accounts.get_by_subject(identity.subject_id)
    if existing:
        return existing
    try:
        account = await accounts.create(identity)
    except Conflict:
        existing = await accounts.get_by_subject(identity.subject_id)
        if existing:
            logger.info(
                "Lost account creation race; reusing existing account",
                extra={"subject_id": identity.subject_id},
            )
            return existing
        logger.warning(
            "Account creation conflicted on email owned by another subject",
            extra={"subject_id": identity.subject_id},
        )
        raise Conflict("email is already registered to another account")
    metrics.accounts_created_total.inc()
    logger.info("Created account", extra={"account_id": str(account.id)})
    return account


async def sync_profile(accounts: AccountRepoPort, identity: VerifiedIdentity) -> Account:
    account = await identify(accounts, identity)
    if (identity.display_name and identity.display_name != account.display_name) or (
        identity.photo_url and identity.photo_url != account.photo_url
    ):
        updated = await accounts.update_profile(
            account.id,
            display_name=identity.display_name,
            photo_url=identity.photo_url,
        )
        if updated:
            return updated
    return account


async def update_profile(
    accounts: AccountRepoPort,
    account_id: UUID,
    *,
    display_name: str | None,
    photo_url: str | None,
) -> Account:
    updated = await accounts.update_profile(
        account_id, display_name=display_name, photo_url=photo_url
    )
    if not updated:
        raise NotFound("account not found")
    return updated


async def set_role(accounts: AccountRepoPort, account_id: UUID, role: Role) -> Account:
    updated = await accounts.set_role(account_id, role)
    if not updated:
        raise NotFound("account not found")
    logger.info(
        "Account role changed",
        extra={"target_account_id": str(account_id), "role": role.value},
    )
    return updated
