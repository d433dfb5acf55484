"""Lean character documents.

Characters are stored as references (``{id, name}``) into the codex and the
owner's library; display data is resolved when the sheet loads. Older
documents embedded full copies of feats, powers, archetypes and a handful of
derived stats. :func:`migrate_character_data` rewrites such a document into
the lean shape and reports what it changed; running it on an already lean
document reports nothing.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.infra.logging import get_logger
from realms.models.db_models import Character

logger = get_logger(__name__)

LEGACY_FIELDS = (
    "allTraits", "_displayFeats", "speciesTraits", "defenses", "defenseBonuses",
    "archetypeName", "archetypeAbility", "ancestryTraits", "flawTrait",
    "characteristicTrait", "health_energy_points",
    "martialProficiency", "powerProficiency",
    "defenseSkills",
)
DERIVED_FIELDS = ("speed", "evasion", "armor")

# Never persisted: identity lives on the row, display fields are recomputed.
UNSAVED_FIELDS = ("id", "createdAt", "updatedAt", "_displayFeats", "allTraits", "defenses", "defenseBonuses")


# --- Strippers ---


def strip_archetype(arch: Any) -> Any:
    if not isinstance(arch, dict):
        return arch
    lean = {key: arch[key] for key in ("id", "type") if arch.get(key)}
    return lean or None


def strip_ancestry(anc: Any) -> Any:
    if not isinstance(anc, dict):
        return anc
    lean = {key: anc[key] for key in ("id", "name", "selectedTraits") if anc.get(key)}
    for key in ("selectedFlaw", "selectedCharacteristic"):
        if key in anc:
            lean[key] = anc[key]
    return lean or anc


def strip_feat(feat: Any) -> Any:
    if isinstance(feat, str):
        return {"name": feat}
    if not isinstance(feat, dict):
        return feat
    lean = {key: feat[key] for key in ("id", "name") if feat.get(key)}
    uses = feat.get("currentUses")
    if isinstance(uses, (int, float)) and not isinstance(uses, bool):
        lean["currentUses"] = uses
    return lean or None


def strip_power(power: Any) -> Any:
    if isinstance(power, str):
        return {"name": power, "innate": False}
    if not isinstance(power, dict):
        return power
    lean = {key: power[key] for key in ("id", "name") if power.get(key)}
    lean["innate"] = bool(power.get("innate"))
    return lean


def strip_technique(tech: Any) -> Any:
    if isinstance(tech, str):
        return {"name": tech}
    if not isinstance(tech, dict):
        return tech
    lean = {key: tech[key] for key in ("id", "name") if tech.get(key)}
    return lean or None


def strip_equipment_item(item: Any) -> Any:
    if isinstance(item, str):
        return {"name": item}
    if not isinstance(item, dict):
        return item
    lean = {key: item[key] for key in ("id", "name") if item.get(key)}
    if item.get("equipped"):
        lean["equipped"] = True
    quantity = item.get("quantity")
    if quantity and quantity != 1:
        lean["quantity"] = quantity
    return lean or None


def strip_skill(skill: Any) -> Any:
    if isinstance(skill, str):
        return {"name": skill, "skill_val": 0, "prof": False}
    if not isinstance(skill, dict):
        return skill
    lean = {key: skill[key] for key in ("id", "name") if skill.get(key)}
    skill_val = skill.get("skill_val")
    lean["skill_val"] = 0 if skill_val is None else skill_val
    lean["prof"] = bool(skill.get("prof"))
    if skill.get("selectedBaseSkillId"):
        lean["selectedBaseSkillId"] = skill["selectedBaseSkillId"]
    return lean


def _truthy(value: Any) -> bool:
    # Containers count as set even when empty.
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def _strip_list(items: list, stripper) -> list:
    return [s for s in (stripper(item) for item in items) if _truthy(s)]


# --- Migration ---


def migrate_character_data(data: Any) -> tuple[Any, list[str]]:
    """Return ``(lean_data, changes)``; ``data`` itself is left untouched."""
    if not isinstance(data, dict):
        return data, []

    d = copy.deepcopy(data)
    changes: list[str] = []

    for pool, current_key in (("health", "currentHealth"), ("energy", "currentEnergy")):
        resource = d.get(pool)
        if isinstance(resource, dict) and "current" in resource:
            if current_key not in d:
                d[current_key] = resource["current"]
                changes.append(f"{pool}.current → {current_key}")
            del d[pool]
            changes.append(f"removed {pool} ResourcePool")

    hep = d.get("health_energy_points")
    if isinstance(hep, dict):
        for source, target in (("health", "healthPoints"), ("energy", "energyPoints")):
            if target not in d and source in hep:
                d[target] = hep[source]
                changes.append(f"health_energy_points.{source} → {target}")
        del d["health_energy_points"]
        changes.append("removed health_energy_points")

    if d.get("species") and not _truthy(d.get("ancestry")):
        d["ancestry"] = {"name": d["species"]}
        changes.append(f'species "{d["species"]}" → ancestry.name')
    if d.get("species"):
        del d["species"]
        changes.append("removed species field")

    archetype = d.get("archetype")
    if isinstance(archetype, dict) and any(
        _truthy(archetype.get(key)) for key in ("name", "description", "pow_abil", "mart_abil", "ability")
    ):
        lean = strip_archetype(archetype)
        if lean:
            d["archetype"] = lean
            changes.append("stripped archetype to { id, type }")
        else:
            del d["archetype"]
            changes.append("removed archetype (no id or type)")

    ancestry = d.get("ancestry")
    if isinstance(ancestry, dict) and any(
        _truthy(ancestry.get(key)) for key in ("size", "speed", "description", "traits", "flaws", "characteristics")
    ):
        lean = strip_ancestry(ancestry)
        if lean != ancestry:
            d["ancestry"] = lean
            changes.append("stripped ancestry to lean fields")

    for key, stripper, message in (
        ("feats", strip_feat, "stripped feats to { id, name, currentUses }"),
        ("archetypeFeats", strip_feat, "stripped archetypeFeats"),
        ("powers", strip_power, "stripped powers to { id, name, innate }"),
        ("techniques", strip_technique, "stripped techniques to { id, name }"),
    ):
        if isinstance(d.get(key), list):
            before = d[key]
            d[key] = _strip_list(before, stripper)
            if d[key] != before:
                changes.append(message)

    equipment = d.get("equipment")
    if isinstance(equipment, dict):
        equipment_changed = False
        for key in ("weapons", "armor", "items"):
            if isinstance(equipment.get(key), list):
                before = equipment[key]
                equipment[key] = _strip_list(before, strip_equipment_item)
                equipment_changed = equipment_changed or equipment[key] != before
        if _truthy(equipment.get("inventory")):
            del equipment["inventory"]
            equipment_changed = True
        if equipment_changed:
            changes.append("stripped equipment items to lean format")

    if isinstance(d.get("skills"), dict):
        d["skills"] = [
            {"id": skill_id, "skill_val": value, "prof": True}
            for skill_id, value in d["skills"].items()
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
        ]
        changes.append("converted skills from Record to lean array")
    if isinstance(d.get("skills"), list):
        before = d["skills"]
        d["skills"] = _strip_list(before, strip_skill)
        if d["skills"] != before:
            changes.append("stripped skills to lean format")

    for old, new in (
        ("martialProficiency", "mart_prof"),
        ("powerProficiency", "pow_prof"),
        ("defenseSkills", "defenseVals"),
    ):
        if old in d and new not in d:
            d[new] = d[old]
            changes.append(f"{old} → {new}")

    for key in LEGACY_FIELDS:
        if key in d:
            del d[key]
            changes.append(f"removed legacy field: {key}")

    for key in DERIVED_FIELDS:
        if key in d:
            del d[key]
            changes.append(f"removed derived field: {key}")

    return d, changes


def drop_unset(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: drop_unset(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_unset(v) for v in value]
    return value


def prepare_for_save(data: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Clean a client document before it is persisted and stamp ``updatedAt``."""
    cleaned = {k: v for k, v in data.items() if k not in UNSAVED_FIELDS}
    cleaned = drop_unset(cleaned)
    cleaned["updatedAt"] = (now or datetime.now(timezone.utc)).isoformat()
    return cleaned


@dataclass
class MigrationSummary:
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


async def migrate_all_characters(db: AsyncSession, dry_run: bool = False) -> MigrationSummary:
    """Rewrite every stored character into the lean shape.

    Rows that are already lean are skipped. A failure on one row is recorded
    in the summary and does not stop the run. Nothing is written when
    ``dry_run`` is set.
    """
    result = await db.execute(select(Character).order_by(Character.id))
    characters = list(result.scalars().all())
    summary = MigrationSummary(total=len(characters))

    for char in characters:
        try:
            lean, changes = migrate_character_data(char.data)
            if not changes:
                summary.skipped += 1
                continue

            name = (char.data.get("name") if isinstance(char.data, dict) else None) or char.id
            logger.info("character_migrated", character_id=char.id, name=name,
                        changes=changes, dry_run=dry_run)
            if not dry_run:
                char.data = lean
                await db.flush()
            summary.migrated += 1
        except Exception as exc:
            logger.error("character_migration_failed", character_id=char.id, error=str(exc))
            summary.errors.append({"id": char.id, "error": str(exc)})

    logger.info("lean_migration_finished", total=summary.total, migrated=summary.migrated,
                skipped=summary.skipped, errors=len(summary.errors), dry_run=dry_run)
    return summary
