"""Dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts
from realms.infra.auth import AuthUser, get_current_user
from realms.infra.db import get_db


async def require_admin(
    user: Annotated[AuthUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthUser:
    if not await accounts.is_admin(db, user.uid):
        raise HTTPException(status_code=403, detail="Admin only")
    return user


AdminUser = Annotated[AuthUser, Depends(require_admin)]
