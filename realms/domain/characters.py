"""Character sheets: storage, visibility and derived stats."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts
from realms.domain.errors import ForbiddenError
from realms.domain.lean import prepare_for_save
from realms.domain.legacy_store import get_legacy_store
from realms.domain.rules.calculations import calculate_all_stats, get_archetype_ability_score
from realms.domain.rules.formulas import parse_level
from realms.domain.rules.progression import get_player_progression
from realms.domain.rules.skill_allocation import calculate_simple_skill_points_spent, get_total_skill_points
from realms.infra.logging import get_logger
from realms.models.db_models import Campaign, Character, UserItem, UserPower, UserTechnique

logger = get_logger(__name__)


def archetype_display_name(archetype: Any) -> str | None:
    if not isinstance(archetype, dict):
        return None
    if archetype.get("name"):
        return archetype["name"]
    kind = archetype.get("type")
    if not kind:
        return None
    return " ".join(word[:1].upper() + word[1:] for word in kind.split("-"))


def summarize(row: Character) -> dict[str, Any]:
    d = row.data or {}
    ancestry = d.get("ancestry") if isinstance(d.get("ancestry"), dict) else {}
    return {
        "id": row.id,
        "name": d.get("name") or "Unnamed",
        "level": d.get("level") or 1,
        "portrait": d.get("portrait"),
        "archetypeName": archetype_display_name(d.get("archetype")),
        "ancestryName": ancestry.get("name") or d.get("species"),
        "status": d.get("status"),
        "visibility": d.get("visibility") or "private",
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


def row_to_character(row: Character) -> dict[str, Any]:
    d = row.data or {}
    return {
        "id": row.id,
        "userId": row.user_id,
        "name": d.get("name") or "Unnamed",
        "level": d.get("level") or 1,
        **{k: v for k, v in d.items() if k not in ("createdAt", "updatedAt")},
        "createdAt": row.created_at.isoformat() if row.created_at else d.get("createdAt"),
        "updatedAt": row.updated_at.isoformat() if row.updated_at else d.get("updatedAt"),
    }


async def list_characters(db: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """Summaries of the user's characters, legacy-only ones appended last."""
    result = await db.execute(
        select(Character)
        .where(Character.user_id == user_id)
        .order_by(Character.updated_at.desc())
    )
    rows = result.scalars().all()
    summaries = [summarize(row) for row in rows]

    store = get_legacy_store()
    if store is not None:
        known = {row.id for row in rows}
        for character_id, doc in store.list_characters(user_id):
            if character_id not in known:
                summaries.append(summarize(Character(id=character_id, user_id=user_id, data=doc)))
    return summaries


async def get_character(db: AsyncSession, character_id: str) -> Character | None:
    """Relational row, or a transient row built from the legacy export."""
    row = await db.get(Character, character_id)
    if row is not None:
        return row

    store = get_legacy_store()
    if store is None:
        return None
    found = store.find_character(character_id)
    if found is None:
        return None
    owner, doc = found
    logger.info("legacy_character_served", character_id=character_id, owner=owner)
    return Character(id=character_id, user_id=owner, data=doc)


async def get_owned_character(db: AsyncSession, user_id: str, character_id: str) -> Character | None:
    row = await db.get(Character, character_id)
    if row is None or row.user_id != user_id:
        return None
    return row


async def campaigns_for_user(db: AsyncSession, uid: str) -> list[Campaign]:
    result = await db.execute(select(Campaign).order_by(Campaign.created_at))
    return [
        c for c in result.scalars().all()
        if c.owner_id == uid or uid in (c.member_ids or [])
    ]


async def can_view_character(db: AsyncSession, viewer_uid: str | None, row: Character) -> bool:
    """Owners always; others when public, or when both sit in one campaign."""
    if viewer_uid is not None and viewer_uid == row.user_id:
        return True
    visibility = (row.data or {}).get("visibility") or "private"
    if visibility == "public":
        return True
    if visibility != "campaign" or viewer_uid is None:
        return False
    for campaign in await campaigns_for_user(db, viewer_uid):
        for entry in campaign.characters or []:
            if entry.get("userId") == row.user_id and entry.get("characterId") == row.id:
                return True
    return False


def _library_rows(rows) -> list[dict[str, Any]]:
    return [{"id": r.id, "docId": r.id, **(r.data or {})} for r in rows]


async def get_owner_library_for_view(db: AsyncSession, owner_uid: str) -> dict[str, list]:
    """The owner's powers, techniques and items, for viewers of a shared sheet."""
    library = {}
    for key, model in (("powers", UserPower), ("techniques", UserTechnique), ("items", UserItem)):
        result = await db.execute(select(model).where(model.user_id == owner_uid))
        library[key] = _library_rows(result.scalars().all())
    return library


async def get_character_for_view(
    db: AsyncSession, viewer_uid: str | None, character_id: str,
) -> dict[str, Any] | None:
    """Sheet payload for ``viewer_uid``; raises ForbiddenError when not visible."""
    row = await get_character(db, character_id)
    if row is None:
        return None
    if viewer_uid is not None and viewer_uid == row.user_id:
        return row_to_character(row)
    if not await can_view_character(db, viewer_uid, row):
        raise ForbiddenError("Character not found or not visible")
    return {
        "character": row_to_character(row),
        "libraryForView": await get_owner_library_for_view(db, row.user_id),
    }


async def create_character(
    db: AsyncSession,
    user_id: str,
    data: dict[str, Any],
    duplicate_of: str | None = None,
    now: datetime | None = None,
) -> Character | None:
    """Create a character, or copy ``duplicate_of``; None when the source is missing."""
    now = now or datetime.now(timezone.utc)
    await accounts.ensure_profile(db, user_id)
    limits = await accounts.get_limits(db, user_id)
    await accounts.check_limit(db, user_id, Character, limits.max_characters, "characters")

    if duplicate_of:
        source = await get_owned_character(db, user_id, duplicate_of)
        if source is None:
            return None
        base = {k: v for k, v in (source.data or {}).items() if k not in ("createdAt", "updatedAt")}
        doc = {
            **base,
            "name": f"{base.get('name') or 'Unnamed'} (Copy)",
            "createdAt": now.isoformat(),
            "updatedAt": now.isoformat(),
        }
    else:
        doc = prepare_for_save(data, now)
        doc["createdAt"] = now.isoformat()

    row = Character(user_id=user_id, data=doc)
    db.add(row)
    await db.flush()
    logger.info("character_created", uid=user_id, character_id=row.id, duplicate_of=duplicate_of)
    return row


async def update_character(
    db: AsyncSession, user_id: str, character_id: str, data: dict[str, Any],
) -> Character | None:
    """Shallow-merge ``data`` into the stored document."""
    row = await get_owned_character(db, user_id, character_id)
    if row is None:
        return None
    row.data = {**(row.data or {}), **prepare_for_save(data)}
    await db.flush()
    return row


async def set_visibility(db: AsyncSession, row: Character, visibility: str) -> None:
    row.data = {**(row.data or {}), "visibility": visibility}
    await db.flush()


async def delete_character(db: AsyncSession, user_id: str, character_id: str) -> bool:
    row = await get_owned_character(db, user_id, character_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    logger.info("character_deleted", uid=user_id, character_id=character_id)
    return True


def _species_for(ancestry: Any, species_rows: list[dict[str, Any]]) -> dict[str, Any] | None:
    if not isinstance(ancestry, dict):
        return None
    name = str(ancestry.get("name") or "").lower()
    for species in species_rows:
        if species["id"] == ancestry.get("id") or (name and species["name"].lower() == name):
            return species
    return None


def skill_point_budget(data: dict[str, Any], reference: dict[str, list] | None = None) -> dict[str, int]:
    """Skill points available, spent and left for a lean character document.

    A species granting skill ``"0"`` (any skill) adds one point.
    """
    reference = reference or {}
    skill_meta = {
        str(s["id"]): {"isSubSkill": s.get("base_skill_id") is not None}
        for s in reference.get("skills") or []
    }
    species = _species_for(data.get("ancestry"), reference.get("species") or [])
    species_skill_ids = {str(i) for i in (species or {}).get("skills") or []}

    allocations = {}
    for entry in data.get("skills") or []:
        if not isinstance(entry, dict) or entry.get("id") is None:
            continue
        value = entry.get("skill_val")
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            value = 0
        if entry.get("prof") or value > 0:
            allocations[str(entry["id"])] = int(value)
    defense_vals = data.get("defenseVals") if isinstance(data.get("defenseVals"), dict) else None

    total = get_total_skill_points(parse_level(data.get("level")), "character")
    if "0" in species_skill_ids:
        total += 1
    spent = calculate_simple_skill_points_spent(allocations, species_skill_ids, skill_meta, defense_vals)
    return {"total": total, "spent": spent, "remaining": total - spent}


def get_character_stats(
    row: Character, rules: dict[str, Any] | None = None, reference: dict[str, list] | None = None,
) -> dict[str, Any]:
    data = row.data or {}
    return {
        "id": row.id,
        "stats": calculate_all_stats(data, rules),
        "progression": get_player_progression(data.get("level") or 1, get_archetype_ability_score(data)),
        "skillPoints": skill_point_budget(data, reference),
    }
