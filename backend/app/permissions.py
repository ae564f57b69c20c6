from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from .auth import CurrentAccount
from .errors import NotAdministrator
from .schemas import Account
from .services.access_control import AdminDecision, authorize_admin_action


async def require_admin(current: CurrentAccount) -> Account:
    if authorize_admin_action(current) is not AdminDecision.allowed:
        raise NotAdministrator("Admin access required").to_http()
    return current


AdminAccount = Annotated[Account, Depends(require_admin)]
