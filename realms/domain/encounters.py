"""Encounter tracker state (combat, skill and mixed encounters)."""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts, library
from realms.domain.rules.calculations import calculate_evasion
from realms.domain.rules.encounter_utils import (
    calculate_creature_max_energy,
    calculate_creature_max_health,
    compute_skill_roll_result,
)
from realms.infra.logging import get_logger
from realms.models.db_models import Encounter

logger = get_logger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def to_summary(row: Encounter) -> dict[str, Any]:
    d = row.data or {}
    skill = d.get("skillEncounter") or {}
    return {
        "id": row.id,
        "name": d.get("name") or "Unnamed Encounter",
        "description": d.get("description"),
        "type": d.get("type") or "combat",
        "status": d.get("status") or "preparing",
        "combatantCount": len(d.get("combatants") or []),
        "participantCount": len(skill.get("participants") or []),
        "round": d.get("round") or 0,
        "updatedAt": _iso(row.updated_at),
        "createdAt": _iso(row.created_at),
    }


def to_encounter(row: Encounter) -> dict[str, Any]:
    """Full encounter with defaults filled in for fields never set."""
    d = row.data or {}
    return {
        "id": row.id,
        "name": d.get("name") or "Unnamed Encounter",
        "description": d.get("description"),
        "type": d.get("type") or "combat",
        "status": d.get("status") or "preparing",
        "campaignId": d.get("campaignId"),
        "combatants": d.get("combatants") or [],
        "round": d.get("round", 0),
        "currentTurnIndex": d.get("currentTurnIndex", -1),
        "isActive": d.get("isActive", False),
        "applySurprise": d.get("applySurprise", False),
        "skillEncounter": d.get("skillEncounter"),
        "createdAt": d.get("createdAt") or _iso(row.created_at),
        "updatedAt": d.get("updatedAt") or _iso(row.updated_at),
    }


async def list_encounters(db: AsyncSession, uid: str) -> list[dict[str, Any]]:
    result = await db.execute(
        select(Encounter).where(Encounter.user_id == uid).order_by(Encounter.updated_at.desc())
    )
    return [to_summary(row) for row in result.scalars().all()]


async def get_encounter(db: AsyncSession, uid: str, encounter_id: str) -> Encounter | None:
    row = await db.get(Encounter, encounter_id)
    if row is None or row.user_id != uid:
        return None
    return row


async def create_encounter(db: AsyncSession, uid: str, data: dict[str, Any]) -> Encounter:
    await accounts.ensure_profile(db, uid)
    now = datetime.now(timezone.utc).isoformat()
    doc = {k: v for k, v in data.items() if k != "id"}
    doc["createdAt"] = now
    doc["updatedAt"] = now
    score_skill_participants(doc)
    row = Encounter(user_id=uid, data=doc)
    db.add(row)
    await db.flush()
    logger.info("encounter_created", uid=uid, encounter_id=row.id, type=doc.get("type"))
    return row


async def update_encounter(
    db: AsyncSession, uid: str, encounter_id: str, updates: dict[str, Any],
) -> Encounter | None:
    """Merge validated ``updates`` over the stored state."""
    row = await get_encounter(db, uid, encounter_id)
    if row is None:
        return None
    cleaned = {k: v for k, v in updates.items() if k not in ("id", "createdAt")}
    cleaned["updatedAt"] = datetime.now(timezone.utc).isoformat()
    merged = {**(row.data or {}), **cleaned}
    score_skill_participants(merged)
    row.data = merged
    await db.flush()
    return row


async def delete_encounter(db: AsyncSession, uid: str, encounter_id: str) -> bool:
    row = await get_encounter(db, uid, encounter_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    return True


# --- Skill encounters ---

DEFAULT_DIFFICULTY_SCORE = 10


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def score_skill_participants(doc: dict[str, Any]) -> None:
    """Fill in success/failure counts for participants who rolled but were never scored."""
    skill = doc.get("skillEncounter")
    if not isinstance(skill, dict):
        return
    ds = skill.get("difficultyScore")
    if not _number(ds):
        ds = DEFAULT_DIFFICULTY_SCORE
    scored = []
    changed = False
    for p in skill.get("participants") or []:
        if (
            isinstance(p, dict)
            and p.get("hasRolled")
            and _number(p.get("rollValue"))
            and p.get("successCount") is None
            and p.get("failureCount") is None
        ):
            result = compute_skill_roll_result(int(p["rollValue"]), int(ds))
            p = {**p, "successCount": result["successes"], "failureCount": result["failures"]}
            changed = True
        scored.append(p)
    if changed:
        doc["skillEncounter"] = {**skill, "participants": scored}


# --- Combatants from the creature library ---


def creature_combatants(
    creature_id: str,
    creature: dict[str, Any],
    quantity: int = 1,
    combatant_type: str = "enemy",
    rules: dict[str, Any] | None = None,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Tracker entries for ``quantity`` copies of a library creature, lettered when more than one."""
    rng = rng or random.Random()
    level = creature.get("level") or 1
    abilities = creature.get("abilities") or {}
    vitality = abilities.get("vitality", abilities.get("vit")) or 0
    agility = abilities.get("agility", abilities.get("agi")) or 0
    acuity = abilities.get("acuity", abilities.get("acu")) or 0
    max_health = calculate_creature_max_health(level, vitality, creature.get("hitPoints") or 0)
    max_energy = calculate_creature_max_energy(level, abilities, creature.get("energyPoints") or 0)
    evasion = calculate_evasion(agility, rules=rules)
    name = creature.get("name") or "Creature"

    combatants = []
    for i in range(quantity):
        suffix = f" {chr(ord('A') + i)}" if quantity > 1 else ""
        combatants.append({
            "id": uuid.uuid4().hex,
            "name": name + suffix,
            "initiative": rng.randint(1, 20) + acuity,
            "acuity": acuity,
            "maxHealth": max_health,
            "currentHealth": max_health,
            "maxEnergy": max_energy,
            "currentEnergy": max_energy,
            "armor": 0,
            "evasion": evasion,
            "ap": 4,
            "conditions": [],
            "notes": "",
            "combatantType": combatant_type,
            "isAlly": combatant_type != "enemy",
            "isSurprised": False,
            "sourceType": "creature-library",
            "sourceId": creature_id,
        })
    return combatants


async def add_creature_combatants(
    db: AsyncSession,
    uid: str,
    encounter_id: str,
    creature_id: str,
    quantity: int = 1,
    combatant_type: str = "enemy",
    rules: dict[str, Any] | None = None,
    rng: random.Random | None = None,
) -> list[dict[str, Any]] | None:
    """Append combatants built from one of ``uid``'s library creatures.

    None when the encounter is missing; ValueError when the creature is.
    """
    row = await get_encounter(db, uid, encounter_id)
    if row is None:
        return None
    creature = await library.get_item(db, uid, "creatures", creature_id)
    if creature is None:
        raise ValueError("Creature not found")

    added = creature_combatants(
        creature.id, creature.data or {}, quantity, combatant_type, rules=rules, rng=rng,
    )
    data = row.data or {}
    row.data = {
        **data,
        "combatants": [*(data.get("combatants") or []), *added],
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    }
    await db.flush()
    logger.info("combatants_added", uid=uid, encounter_id=encounter_id, creature_id=creature_id,
                count=len(added))
    return added
