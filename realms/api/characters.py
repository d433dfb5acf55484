"""Character sheet API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import characters as char_mod
from realms.domain.codex import load_core_rules, load_skill_reference
from realms.domain.errors import ForbiddenError
from realms.infra.auth import CurrentUser, OptionalUser
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.infra.rate_limit import rate_limited, standard_limiter
from realms.models.schemas import CharacterCreate, CharacterUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/characters", tags=["characters"])


@router.get("")
async def list_characters(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    return await char_mod.list_characters(db, user.uid)


@router.post("", dependencies=[Depends(rate_limited(standard_limiter, "characters"))])
async def create_character(
    body: CharacterCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Create a character, or copy one with ``duplicateOf``."""
    try:
        row = await char_mod.create_character(
            db, user.uid, body.document(), duplicate_of=body.duplicate_of,
        )
    except ValueError as e:
        logger.warning("character_create_rejected", uid=user.uid, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    if row is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return {"id": row.id}


@router.get("/{character_id}")
async def get_character(
    character_id: str,
    user: OptionalUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Owners get the sheet; other viewers also get the owner's library."""
    viewer = user.uid if user else None
    try:
        payload = await char_mod.get_character_for_view(db, viewer, character_id)
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if payload is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return payload


@router.patch("/{character_id}")
async def update_character(
    character_id: str,
    body: CharacterUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await char_mod.update_character(db, user.uid, character_id, body.document())
    if row is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return {"ok": True}


@router.delete("/{character_id}")
async def delete_character(
    character_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await char_mod.delete_character(db, user.uid, character_id):
        raise HTTPException(status_code=404, detail="Character not found")
    return {"ok": True}


@router.get("/{character_id}/stats")
async def get_character_stats(
    character_id: str,
    user: OptionalUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await char_mod.get_character(db, character_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Character not found")
    if not await char_mod.can_view_character(db, user.uid if user else None, row):
        raise HTTPException(status_code=403, detail="Character not found or not visible")
    rules = await load_core_rules(db)
    reference = await load_skill_reference(db)
    return char_mod.get_character_stats(row, rules, reference)
