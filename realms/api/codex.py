"""Codex API: rules reference data and progression tables."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain.codex import error_hint, load_codex
from realms.domain.rules.progression import (
    get_creature_progression,
    get_level_difference,
    get_player_progression,
)
from realms.infra.config import settings
from realms.infra.db import get_db
from realms.infra.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/codex", tags=["codex"])


@router.get("")
async def get_codex(db: Annotated[AsyncSession, Depends(get_db)]):
    try:
        return await load_codex(db)
    except SQLAlchemyError as e:
        logger.error("codex_load_failed", error=str(e))
        body = {"error": "Failed to load codex"}
        hint = error_hint(str(e), debug=settings.debug)
        if hint:
            body["hint"] = hint
        return JSONResponse(status_code=500, content=body)


@router.get("/progression")
async def get_progression(
    level: Annotated[float, Query(gt=0, le=30)] = 1,
    ability: int = 0,
    entity_type: Annotated[Literal["character", "creature"], Query(alias="entityType")] = "character",
    to_level: Annotated[float | None, Query(alias="toLevel", gt=0, le=30)] = None,
) -> dict:
    """Progression at ``level``; with ``toLevel``, also the points gained getting there."""
    if entity_type == "creature":
        result = get_creature_progression(level, ability)
    else:
        result = get_player_progression(level, ability)
    if to_level is not None:
        kind = "CREATURE" if entity_type == "creature" else "PLAYER"
        result["difference"] = get_level_difference(level, to_level, ability, kind)
    return result
