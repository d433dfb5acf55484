"""The rules codex: reference tables shaped for clients, plus admin editing.

Codex rows are JSON documents that came from spreadsheets, so the same column
may hold a list, a comma-separated string or a number in text. The shaping
helpers coerce them into one stable response shape per table.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from realms.infra.logging import get_logger
from realms.models.db_models import (
    CODEX_TABLES,
    CodexArchetype,
    CodexCreatureFeat,
    CodexEquipment,
    CodexFeat,
    CodexPart,
    CodexProperty,
    CodexSkill,
    CodexSpecies,
    CodexTrait,
    CoreRules,
)

logger = get_logger(__name__)

_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


# --- Coercion helpers ---


def to_str_array(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return []


def parse_int(value: Any) -> int | None:
    """Leading integer of ``value`` (``"12 ft"`` → 12); None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return None if math.isnan(value) else int(value)
    match = _INT_PREFIX.match(str(value))
    return int(match.group()) if match else None


def parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else value
    match = _FLOAT_PREFIX.match(str(value))
    return float(match.group()) if match else None


def to_num_array(value: Any) -> list[float]:
    if not value:
        return []
    if isinstance(value, list):
        return [n for n in (parse_float(v) for v in value) if n is not None]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [value]
    if isinstance(value, str):
        return [n for n in (parse_float(s) for s in value.split(",")) if n is not None]
    return []


def to_bool(value: Any) -> bool:
    return value is True or value == "true"


def _number(value: Any, default: float = 0) -> float:
    parsed = parse_float(value)
    if parsed is None:
        return default
    return int(parsed) if isinstance(parsed, float) and parsed.is_integer() else parsed


def _first_array(*candidates: Any) -> list[str]:
    for candidate in candidates:
        values = to_str_array(candidate)
        if values:
            return values
    return []


# --- Shapers, one per table ---


def shape_feat(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "category": d.get("category") or "",
        "ability": d.get("ability"),
        "ability_req": to_str_array(d.get("ability_req")),
        "abil_req_val": to_num_array(d.get("abil_req_val")),
        "tags": to_str_array(d.get("tags")),
        "skill_req": to_str_array(d.get("skill_req")),
        "skill_req_val": to_num_array(d.get("skill_req_val")),
        "lvl_req": parse_int(d.get("lvl_req")) or 0,
        "uses_per_rec": parse_int(d.get("uses_per_rec")) or 0,
        "mart_abil_req": d.get("mart_abil_req"),
        "char_feat": bool(d.get("char_feat")),
        "state_feat": bool(d.get("state_feat")),
        "rec_period": d.get("rec_period"),
    }


def shape_skill(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    ability = d.get("ability")
    if isinstance(ability, list):
        ability = ", ".join(str(a) for a in ability)
    elif not isinstance(ability, str):
        ability = ""
    base_skill_id = d.get("base_skill_id")
    if isinstance(base_skill_id, str):
        base_skill_id = parse_int(base_skill_id) if base_skill_id else None
    elif not isinstance(base_skill_id, (int, float)) or isinstance(base_skill_id, bool):
        base_skill_id = None
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "ability": ability,
        "base_skill_id": base_skill_id,
    }


def shape_species(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    sizes = d.get("sizes")
    if isinstance(sizes, str):
        sizes = [s.strip() for s in sizes.split(",")]
    elif not isinstance(sizes, list):
        sizes = []
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "type": d.get("type") or "",
        "size": (sizes[0] if sizes else None) or "Medium",
        "sizes": sizes,
        "speed": parse_int(d.get("speed")) or 6,
        "traits": _first_array(d.get("traits"), d.get("trait_ids"), d.get("traitIds")),
        "species_traits": _first_array(
            d.get("species_traits"), d.get("species_trait_ids"), d.get("speciesTraitIds")),
        "ancestry_traits": _first_array(
            d.get("ancestry_traits"), d.get("ancestry_trait_ids"), d.get("ancestryTraitIds")),
        "flaws": _first_array(d.get("flaws"), d.get("flaw_ids"), d.get("flawIds")),
        "characteristics": _first_array(
            d.get("characteristics"), d.get("characteristic_ids"), d.get("characteristicIds")),
        "skills": _first_array(d.get("skills"), d.get("skill_ids"), d.get("skillIds")),
        "languages": to_str_array(d.get("languages")),
        "ability_bonuses": d.get("ability_bonuses"),
        "ave_height": d.get("ave_height"),
        "ave_weight": d.get("ave_weight"),
        "adulthood_lifespan": d.get("adulthood_lifespan"),
    }


def shape_trait(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "species": to_str_array(d.get("species")),
        "uses_per_rec": d.get("uses_per_rec"),
        "rec_period": d.get("rec_period"),
        "flaw": to_bool(d.get("flaw")),
        "characteristic": to_bool(d.get("characteristic")),
    }


def shape_part(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    kind = d.get("type")
    part = {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "category": d.get("category") or "",
        "type": kind.lower() if isinstance(kind, str) and kind else "power",
        "base_en": _number(d.get("base_en")),
        "base_tp": _number(d.get("base_tp")),
    }
    for n in (1, 2, 3):
        part[f"op_{n}_desc"] = d.get(f"op_{n}_desc")
        part[f"op_{n}_en"] = _number(d.get(f"op_{n}_en"))
        part[f"op_{n}_tp"] = _number(d.get(f"op_{n}_tp"))
    part["percentage"] = to_bool(d.get("percentage"))
    part["mechanic"] = to_bool(d.get("mechanic"))
    part["base_stam"] = _number(d.get("base_stam"))
    return part


def shape_property(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "type": d.get("type") or None,
        "tp_cost": _number(d.get("tp_cost")),
        "gold_cost": _number(d.get("gold_cost")),
        "base_ip": _number(d.get("base_ip")),
        "base_tp": _number(d.get("base_tp")),
        "base_c": _number(d.get("base_c")),
        "op_1_desc": d.get("op_1_desc"),
        "op_1_ip": _number(d.get("op_1_ip")),
        "op_1_tp": _number(d.get("op_1_tp")),
        "op_1_c": _number(d.get("op_1_c")),
        "mechanic": to_bool(d.get("mechanic")),
    }


def shape_equipment(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    gold_cost = _number(d.get("gold_cost"))
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "type": d.get("type") or "equipment",
        "subtype": d.get("subtype"),
        "category": d.get("category"),
        "description": d.get("description") or "",
        "damage": d.get("damage"),
        "armor_value": parse_int(d.get("armor_value")) if d.get("armor_value") is not None else None,
        "gold_cost": gold_cost,
        "currency": _number(d.get("currency")) or gold_cost,
        "properties": to_str_array(d.get("properties")),
        "rarity": d.get("rarity"),
        "weight": parse_float(d.get("weight")) if d.get("weight") is not None else None,
    }


def shape_archetype(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    return {"id": row_id, **d}


def shape_creature_feat(row_id: str, d: dict[str, Any]) -> dict[str, Any]:
    points = next((d[k] for k in ("points", "feat_points", "cost") if d.get(k) is not None), 0)
    return {
        "id": row_id,
        "name": d.get("name") or "",
        "description": d.get("description") or "",
        "points": _number(points),
        "feat_lvl": _number(d["feat_lvl"]) if d.get("feat_lvl") is not None else None,
        "lvl_req": _number(d["lvl_req"]) if d.get("lvl_req") is not None else None,
        "mechanic": to_bool(d.get("mechanic")),
        "tiers": _number(d["tiers"]) if d.get("tiers") else None,
        "prereqs": to_str_array(d.get("prereqs")),
    }


SHAPERS: dict[type, Callable[[str, dict[str, Any]], dict[str, Any]]] = {
    CodexFeat: shape_feat,
    CodexSkill: shape_skill,
    CodexSpecies: shape_species,
    CodexTrait: shape_trait,
    CodexPart: shape_part,
    CodexProperty: shape_property,
    CodexEquipment: shape_equipment,
    CodexArchetype: shape_archetype,
    CodexCreatureFeat: shape_creature_feat,
}


# --- Loading ---


async def _shaped(db: AsyncSession, model) -> list[dict[str, Any]]:
    result = await db.execute(select(model).order_by(model.id))
    shaper = SHAPERS[model]
    return [shaper(row.id, row.data or {}) for row in result.scalars().all()]


async def load_core_rules(db: AsyncSession) -> dict[str, Any]:
    """``{category_id: data}``; empty when the table is not there yet."""
    try:
        result = await db.execute(select(CoreRules))
    except SQLAlchemyError as exc:
        logger.warning("core_rules_unavailable", error=str(exc))
        return {}
    return {row.id: row.data for row in result.scalars().all()}


async def load_skill_reference(db: AsyncSession) -> dict[str, list[dict[str, Any]]]:
    """Skills and species only, for skill point budgets."""
    return {"skills": await _shaped(db, CodexSkill), "species": await _shaped(db, CodexSpecies)}


async def load_codex(db: AsyncSession) -> dict[str, Any]:
    parts = await _shaped(db, CodexPart)
    return {
        "feats": await _shaped(db, CodexFeat),
        "skills": await _shaped(db, CodexSkill),
        "species": await _shaped(db, CodexSpecies),
        "traits": await _shaped(db, CodexTrait),
        "powerParts": [p for p in parts if p["type"] == "power"],
        "techniqueParts": [p for p in parts if p["type"] == "technique"],
        "parts": parts,
        "itemProperties": await _shaped(db, CodexProperty),
        "equipment": await _shaped(db, CodexEquipment),
        "archetypes": await _shaped(db, CodexArchetype),
        "creatureFeats": await _shaped(db, CodexCreatureFeat),
        "coreRules": await load_core_rules(db),
    }


def error_hint(message: str, debug: bool = False) -> str | None:
    """Short operator hint for a codex load failure, when one applies."""
    if debug:
        return message
    lowered = message.lower()
    if "connect" in lowered:
        return "Database connection failed. Check REALMS_DATABASE_URL."
    if "exist" in lowered or "relation" in lowered or "no such table" in lowered:
        return "Codex tables may be missing. Run: alembic upgrade head"
    return None


# --- Admin editing ---


def codex_model(table: str):
    model = CODEX_TABLES.get(table)
    if model is None:
        raise ValueError(f"Unknown codex table: {table}")
    return model


async def upsert_codex_row(db: AsyncSession, table: str, row_id: str, data: dict[str, Any]):
    model = codex_model(table)
    row = await db.get(model, row_id)
    payload = {k: v for k, v in data.items() if k != "id"}
    if row is None:
        row = model(id=row_id, data=payload)
        db.add(row)
    else:
        row.data = payload
    await db.flush()
    logger.info("codex_row_saved", table=table, row_id=row_id)
    return row


async def delete_codex_row(db: AsyncSession, table: str, row_id: str) -> bool:
    model = codex_model(table)
    row = await db.get(model, row_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    logger.info("codex_row_deleted", table=table, row_id=row_id)
    return True


async def upsert_core_rules(db: AsyncSession, category: str, data: dict[str, Any]) -> CoreRules:
    row = await db.get(CoreRules, category)
    if row is None:
        row = CoreRules(id=category, data=data)
        db.add(row)
    else:
        row.data = data
    await db.flush()
    logger.info("core_rules_saved", category=category)
    return row
