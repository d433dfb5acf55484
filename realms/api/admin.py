"""Admin API: user roles and codex editing."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.api.deps import AdminUser
from realms.domain import accounts, codex
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.models.schemas import RoleUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users")
async def list_users(
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    return await accounts.list_users(db)


@router.patch("/users/role")
async def update_role(
    body: RoleUpdate,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        profile = await accounts.set_user_role(db, body.username, body.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("role_changed_by_admin", admin=admin.uid, target=profile.id, role=body.role)
    return {"success": True}


@router.put("/codex/{table}/{row_id}")
async def put_codex_row(
    table: str,
    row_id: str,
    data: Annotated[dict[str, Any], Body()],
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        row = await codex.upsert_codex_row(db, table, row_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"id": row.id}


@router.delete("/codex/{table}/{row_id}")
async def delete_codex_row(
    table: str,
    row_id: str,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        deleted = await codex.delete_codex_row(db, table, row_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Codex entry not found")
    return {"ok": True}


@router.put("/core-rules/{category}")
async def put_core_rules(
    category: str,
    data: Annotated[dict[str, Any], Body()],
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await codex.upsert_core_rules(db, category, data)
    return {"id": row.id}
