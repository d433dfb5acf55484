"""Campaigns run by a Realm Master (the owner), joined by invite code."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts, characters as characters_mod
from realms.domain.errors import ForbiddenError
from realms.domain.codex import load_core_rules
from realms.domain.rules.calculations import calculate_evasion, compute_max_health_energy
from realms.domain.rules.constants import ARCHETYPE_DISPLAY_NAMES
from realms.infra.logging import get_logger
from realms.models.db_models import Campaign, CampaignRoll, Character

logger = get_logger(__name__)

INVITE_CODE_LENGTH = 8
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_CAMPAIGN_CHARACTERS = 12
OWNER_MAX_CHARACTERS = 3
MAX_CAMPAIGN_ROLLS = 20


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


async def ensure_unique_invite_code(db: AsyncSession) -> str:
    for _ in range(10):
        code = generate_invite_code()
        taken = await db.scalar(select(Campaign.id).where(Campaign.invite_code == code))
        if taken is None:
            return code
    raise RuntimeError("Failed to generate unique invite code")


def archetype_display_name(archetype_type: str | None) -> str | None:
    if not archetype_type:
        return None
    lower = archetype_type.lower()
    if lower == "poweredmartial":
        lower = "powered-martial"
    return ARCHETYPE_DISPLAY_NAMES.get(lower)


def is_member(campaign: Campaign, uid: str) -> bool:
    return campaign.owner_id == uid or uid in (campaign.member_ids or [])


def to_dict(campaign: Campaign) -> dict[str, Any]:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "description": campaign.description,
        "ownerId": campaign.owner_id,
        "ownerUsername": campaign.owner_username,
        "inviteCode": campaign.invite_code,
        "characters": list(campaign.characters or []),
        "memberIds": list(campaign.member_ids or []),
        "createdAt": campaign.created_at.isoformat() if campaign.created_at else None,
        "updatedAt": campaign.updated_at.isoformat() if campaign.updated_at else None,
    }


def to_summary(campaign: Campaign, uid: str) -> dict[str, Any]:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "description": campaign.description,
        "ownerId": campaign.owner_id,
        "ownerUsername": campaign.owner_username,
        "characterCount": len(campaign.characters or []),
        "isOwner": campaign.owner_id == uid,
        "updatedAt": campaign.updated_at.isoformat() if campaign.updated_at else None,
    }


async def _username(db: AsyncSession, uid: str) -> str | None:
    profile = await accounts.get_profile(db, uid)
    return profile.username if profile else None


async def create_campaign(
    db: AsyncSession, uid: str, name: str, description: str | None = None,
    display_name: str | None = None,
) -> Campaign:
    name = (name or "").strip()
    if len(name) < 2:
        raise ValueError("Campaign name must be at least 2 characters")

    await accounts.ensure_profile(db, uid)
    limits = await accounts.get_limits(db, uid)
    await accounts.check_limit(db, uid, Campaign, limits.max_campaigns, "campaigns")

    campaign = Campaign(
        owner_id=uid,
        name=name,
        description=(description or "").strip(),
        owner_username=await _username(db, uid) or display_name or "Realm Master",
        invite_code=await ensure_unique_invite_code(db),
        characters=[],
        member_ids=[],
    )
    db.add(campaign)
    await db.flush()
    logger.info("campaign_created", uid=uid, campaign_id=campaign.id)
    return campaign


async def list_campaigns(db: AsyncSession, uid: str) -> list[Campaign]:
    campaigns = await characters_mod.campaigns_for_user(db, uid)
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        campaigns,
        key=lambda c: c.updated_at.replace(tzinfo=c.updated_at.tzinfo or timezone.utc) if c.updated_at else epoch,
        reverse=True,
    )


async def get_campaign(db: AsyncSession, campaign_id: str) -> Campaign | None:
    return await db.get(Campaign, campaign_id)


async def get_campaign_for_member(db: AsyncSession, uid: str, campaign_id: str) -> Campaign | None:
    """Non-members get None, same as a missing campaign."""
    campaign = await get_campaign(db, campaign_id)
    if campaign is None or not is_member(campaign, uid):
        return None
    return campaign


async def find_by_invite_code(db: AsyncSession, code: str) -> Campaign | None:
    invite_code = (code or "").strip().upper()
    if len(invite_code) < 4:
        raise ValueError("Invalid invite code")
    return await db.scalar(select(Campaign).where(Campaign.invite_code == invite_code))


def _entry(uid: str, row: Character, username: str | None) -> dict[str, Any]:
    d = row.data or {}
    archetype = d.get("archetype") if isinstance(d.get("archetype"), dict) else {}
    ancestry = d.get("ancestry") if isinstance(d.get("ancestry"), dict) else {}
    return {
        "userId": uid,
        "characterId": row.id,
        "characterName": d.get("name") or "Unnamed",
        "portrait": d.get("portrait"),
        "level": d.get("level") or 1,
        "species": ancestry.get("name") or d.get("species"),
        "archetype": archetype_display_name(archetype.get("type")),
        "ownerUsername": username,
    }


async def _attach(db: AsyncSession, campaign: Campaign, uid: str, row: Character) -> None:
    entries = list(campaign.characters or [])
    entries.append(_entry(uid, row, await _username(db, uid)))
    campaign.characters = entries
    members = list(campaign.member_ids or [])
    if uid not in members:
        members.append(uid)
    campaign.member_ids = members
    await characters_mod.set_visibility(db, row, "campaign")


def _already_in(campaign: Campaign, uid: str, character_id: str) -> bool:
    return any(
        c.get("userId") == uid and c.get("characterId") == character_id
        for c in campaign.characters or []
    )


async def join_campaign(db: AsyncSession, uid: str, invite_code: str, character_id: str) -> Campaign:
    """Add one of ``uid``'s characters to the campaign behind ``invite_code``."""
    code = (invite_code or "").strip().upper()
    if not code:
        raise ValueError("Please enter an invite code")
    campaign = await db.scalar(select(Campaign).where(Campaign.invite_code == code))
    if campaign is None:
        raise ValueError("Invalid invite code. No campaign found.")

    row = await characters_mod.get_owned_character(db, uid, character_id)
    if row is None:
        raise ValueError("Character not found. You can only add your own characters.")
    if _already_in(campaign, uid, character_id):
        raise ValueError("This character is already in the campaign.")
    entries = campaign.characters or []
    if len(entries) >= MAX_CAMPAIGN_CHARACTERS:
        raise ValueError(f"This campaign has reached the maximum of {MAX_CAMPAIGN_CHARACTERS} characters.")
    if campaign.owner_id != uid:
        if any(c.get("userId") == uid for c in entries):
            raise ValueError("You can only have one character per campaign.")
        owner_limits = await accounts.get_limits(db, campaign.owner_id)
        players = {m for m in campaign.member_ids or [] if m != campaign.owner_id}
        if len(players) >= owner_limits.max_players_per_campaign:
            raise ValueError(
                f"This campaign has reached the maximum of {owner_limits.max_players_per_campaign} players."
            )

    await _attach(db, campaign, uid, row)
    await db.flush()
    logger.info("campaign_joined", uid=uid, campaign_id=campaign.id, character_id=character_id)
    return campaign


async def add_character(db: AsyncSession, uid: str, campaign_id: str, character_id: str) -> Campaign | None:
    """Owner adds one of their own characters (up to three)."""
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return None
    if campaign.owner_id != uid:
        raise ForbiddenError("Only the Realm Master can add characters to their campaign")
    row = await characters_mod.get_owned_character(db, uid, character_id)
    if row is None:
        raise ValueError("Character not found")

    entries = campaign.characters or []
    if len(entries) >= MAX_CAMPAIGN_CHARACTERS:
        raise ValueError(f"This campaign has reached the maximum of {MAX_CAMPAIGN_CHARACTERS} characters.")
    if sum(1 for c in entries if c.get("userId") == uid) >= OWNER_MAX_CHARACTERS:
        raise ValueError(f"You can add up to {OWNER_MAX_CHARACTERS} of your own characters.")
    if _already_in(campaign, uid, character_id):
        raise ValueError("This character is already in the campaign.")

    await _attach(db, campaign, uid, row)
    await db.flush()
    return campaign


async def remove_character(
    db: AsyncSession, uid: str, campaign_id: str, owner_uid: str, character_id: str,
) -> Campaign | None:
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return None
    if campaign.owner_id != uid and owner_uid != uid:
        raise ForbiddenError(
            "You can only remove your own character, or the Realm Master can remove any character."
        )
    entries = [
        c for c in campaign.characters or []
        if not (c.get("userId") == owner_uid and c.get("characterId") == character_id)
    ]
    campaign.characters = entries
    campaign.member_ids = list(dict.fromkeys(c.get("userId") for c in entries))
    await db.flush()
    return campaign


async def update_campaign(
    db: AsyncSession, uid: str, campaign_id: str,
    name: str | None = None, description: str | None = None,
) -> Campaign | None:
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return None
    if campaign.owner_id != uid:
        raise ForbiddenError("Only the Realm Master can update the campaign")
    if name is not None:
        name = name.strip()
        if len(name) < 2:
            raise ValueError("Campaign name must be at least 2 characters")
        campaign.name = name
    if description is not None:
        campaign.description = description.strip() or None
    await db.flush()
    return campaign


async def delete_campaign(db: AsyncSession, uid: str, campaign_id: str) -> bool:
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return False
    if campaign.owner_id != uid:
        raise ForbiddenError("Only the Realm Master can delete the campaign")
    await db.execute(delete(CampaignRoll).where(CampaignRoll.campaign_id == campaign_id))
    await db.delete(campaign)
    await db.flush()
    logger.info("campaign_deleted", uid=uid, campaign_id=campaign_id)
    return True


# --- Campaign character sheets ---


async def get_campaign_character(
    db: AsyncSession, uid: str, campaign_id: str, owner_uid: str, character_id: str,
    scope: str | None = None,
) -> dict[str, Any] | None:
    """A character as seen from inside a campaign.

    ``scope="encounter"`` returns the combat snapshot any member may read;
    otherwise the full sheet, for the Realm Master only and never for
    private characters.
    """
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return None
    if not _already_in(campaign, owner_uid, character_id):
        return None
    if not is_member(campaign, uid):
        raise ForbiddenError("You are not in this campaign")
    for_encounter = scope == "encounter"
    if not for_encounter and campaign.owner_id != uid:
        raise ForbiddenError("Only the Realm Master can view player character sheets")

    row = await characters_mod.get_owned_character(db, owner_uid, character_id)
    if row is None:
        return None
    data = row.data or {}

    if for_encounter:
        raw = data.get("abilities") or {}
        abilities = {
            **raw,
            "acuity": raw.get("acuity", raw.get("acu", 0)),
            "agility": raw.get("agility", raw.get("agi", 0)),
        }
        rules = await load_core_rules(db)
        maxima = compute_max_health_energy(data, rules)
        current_hp = data.get("currentHealth", maxima["maxHealth"])
        current_en = data.get("currentEnergy", maxima["maxEnergy"])
        return {
            "name": data.get("name") or "Unknown",
            "abilities": abilities,
            "health": {"max": maxima["maxHealth"], "current": current_hp},
            "energy": {"max": maxima["maxEnergy"], "current": current_en},
            "currentHealth": current_hp,
            "currentEnergy": current_en,
            "evasion": calculate_evasion(abilities.get("agility") or 0, rules=rules),
        }

    if (data.get("visibility") or "private") == "private":
        raise ForbiddenError("This character is set to private and cannot be viewed")
    return {
        **characters_mod.row_to_character(row),
        "libraryForView": await characters_mod.get_owner_library_for_view(db, owner_uid),
    }


# --- Rolls ---


def roll_to_entry(roll: CampaignRoll) -> dict[str, Any]:
    d = roll.data or {}
    return {
        "id": roll.id,
        "characterId": d.get("characterId"),
        "characterName": d.get("characterName"),
        "userId": d.get("userId"),
        "type": d.get("type"),
        "title": d.get("title"),
        "dice": d.get("dice") or [],
        "modifier": d.get("modifier") or 0,
        "total": d.get("total") or 0,
        "isCrit": d.get("isCrit"),
        "isCritFail": d.get("isCritFail"),
        "critMessage": d.get("critMessage"),
        "timestamp": d.get("timestamp") or (roll.created_at.isoformat() if roll.created_at else None),
    }


async def _member_campaign(db: AsyncSession, uid: str, campaign_id: str) -> Campaign | None:
    campaign = await get_campaign(db, campaign_id)
    if campaign is None:
        return None
    if not is_member(campaign, uid):
        raise ForbiddenError("Not a campaign member")
    return campaign


async def list_rolls(db: AsyncSession, uid: str, campaign_id: str) -> list[dict[str, Any]] | None:
    if await _member_campaign(db, uid, campaign_id) is None:
        return None
    result = await db.execute(
        select(CampaignRoll)
        .where(CampaignRoll.campaign_id == campaign_id)
        .order_by(CampaignRoll.created_at.desc())
        .limit(MAX_CAMPAIGN_ROLLS)
    )
    return [roll_to_entry(r) for r in result.scalars().all()]


async def add_roll(
    db: AsyncSession, uid: str, campaign_id: str,
    character_id: str, character_name: str, roll: dict[str, Any],
    now: datetime | None = None,
) -> CampaignRoll | None:
    """Record a roll; only the latest MAX_CAMPAIGN_ROLLS are kept."""
    if await _member_campaign(db, uid, campaign_id) is None:
        return None
    now = now or datetime.now(timezone.utc)
    entry = CampaignRoll(
        campaign_id=campaign_id,
        created_at=now,
        data={
            "characterId": character_id,
            "characterName": character_name,
            "userId": uid,
            "type": roll.get("type"),
            "title": roll.get("title"),
            "dice": roll.get("dice") or [],
            "modifier": roll.get("modifier") or 0,
            "total": roll.get("total") or 0,
            "isCrit": bool(roll.get("isCrit")),
            "isCritFail": bool(roll.get("isCritFail")),
            "critMessage": roll.get("critMessage"),
            "timestamp": now.isoformat(),
        },
    )
    db.add(entry)
    await db.flush()

    count = await db.scalar(
        select(func.count()).select_from(CampaignRoll).where(CampaignRoll.campaign_id == campaign_id)
    )
    if count > MAX_CAMPAIGN_ROLLS:
        stale = await db.execute(
            select(CampaignRoll.id)
            .where(CampaignRoll.campaign_id == campaign_id)
            .order_by(CampaignRoll.created_at.asc())
            .limit(count - MAX_CAMPAIGN_ROLLS)
        )
        await db.execute(delete(CampaignRoll).where(CampaignRoll.id.in_(stale.scalars().all())))
    return entry
