"""Encounter tracker API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import encounters as enc_mod
from realms.domain.codex import load_core_rules
from realms.infra.auth import CurrentUser
from realms.infra.db import get_db
from realms.infra.rate_limit import rate_limited, standard_limiter
from realms.models.schemas import CreatureCombatantsCreate, EncounterCreate, EncounterUpdate

router = APIRouter(prefix="/api/encounters", tags=["encounters"])


@router.get("")
async def list_encounters(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    return await enc_mod.list_encounters(db, user.uid)


@router.post("")
async def create_encounter(
    body: EncounterCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await enc_mod.create_encounter(db, user.uid, body.document())
    return {"id": row.id}


@router.get("/{encounter_id}")
async def get_encounter(
    encounter_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    row = await enc_mod.get_encounter(db, user.uid, encounter_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Encounter not found")
    return enc_mod.to_encounter(row)


@router.patch(
    "/{encounter_id}",
    status_code=204,
    dependencies=[Depends(rate_limited(standard_limiter, "encounters"))],
)
async def update_encounter(
    encounter_id: str,
    body: EncounterUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    row = await enc_mod.update_encounter(db, user.uid, encounter_id, body.document())
    if row is None:
        raise HTTPException(status_code=404, detail="Encounter not found")
    return Response(status_code=204)


@router.delete(
    "/{encounter_id}",
    dependencies=[Depends(rate_limited(standard_limiter, "encounters"))],
)
async def delete_encounter(
    encounter_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await enc_mod.delete_encounter(db, user.uid, encounter_id):
        raise HTTPException(status_code=404, detail="Encounter not found")
    return {"ok": True}


@router.post(
    "/{encounter_id}/combatants",
    dependencies=[Depends(rate_limited(standard_limiter, "encounters"))],
)
async def add_creature_combatants(
    encounter_id: str,
    body: CreatureCombatantsCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    """Add combatants built from a creature in the caller's library."""
    rules = await load_core_rules(db)
    try:
        added = await enc_mod.add_creature_combatants(
            db, user.uid, encounter_id, body.creature_id,
            quantity=body.quantity, combatant_type=body.combatant_type, rules=rules,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if added is None:
        raise HTTPException(status_code=404, detail="Encounter not found")
    return added
