"""Public library API: anyone may read, admins curate."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.api.deps import AdminUser
from realms.domain import library as lib_mod
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.models.schemas import PublicItem

logger = get_logger(__name__)

router = APIRouter(prefix="/api/public", tags=["public"])


def _checked_type(library_type: str) -> str:
    try:
        return lib_mod.validate_type(library_type)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid type")


@router.get("/{library_type}")
async def list_public(
    library_type: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    return await lib_mod.list_public(db, _checked_type(library_type))


@router.post("/{library_type}")
async def save_public(
    library_type: str,
    body: PublicItem,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Create an entry, or replace the one whose ``id`` is in the body."""
    item_id = await lib_mod.save_public(db, _checked_type(library_type), body.document())
    logger.info("public_item_published", admin=admin.uid, type=library_type, item_id=item_id)
    return {"id": item_id}


@router.delete("/{library_type}/{item_id}")
async def delete_public(
    library_type: str,
    item_id: str,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await lib_mod.delete_public(db, _checked_type(library_type), item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}
