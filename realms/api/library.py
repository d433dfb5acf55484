"""User library API: the caller's own powers, techniques, items and creatures."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import library as lib_mod
from realms.infra.auth import CurrentUser
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.infra.rate_limit import rate_limited, standard_limiter
from realms.models.schemas import LibraryItemCreate, LibraryItemUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/user/library", tags=["library"])


def _checked_type(library_type: str) -> str:
    try:
        return lib_mod.validate_type(library_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{library_type}")
async def list_items(
    library_type: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    return await lib_mod.list_items(db, user.uid, _checked_type(library_type))


@router.post("/{library_type}", dependencies=[Depends(rate_limited(standard_limiter, "library"))])
async def create_item(
    library_type: str,
    body: LibraryItemCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    library_type = _checked_type(library_type)
    try:
        row = await lib_mod.create_item(
            db, user.uid, library_type, body.document(), duplicate_of=body.duplicate_of,
        )
    except ValueError as e:
        logger.warning("library_create_rejected", uid=user.uid, type=library_type, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    if row is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return {"id": row.id}


@router.get("/{library_type}/{item_id}")
async def get_item(
    library_type: str,
    item_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await lib_mod.get_item(db, user.uid, _checked_type(library_type), item_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return lib_mod.flatten(row)


@router.patch("/{library_type}/{item_id}")
async def update_item(
    library_type: str,
    item_id: str,
    body: LibraryItemUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await lib_mod.update_item(
        db, user.uid, _checked_type(library_type), item_id, body.document(),
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}


@router.delete("/{library_type}/{item_id}")
async def delete_item(
    library_type: str,
    item_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await lib_mod.delete_item(db, user.uid, _checked_type(library_type), item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}
