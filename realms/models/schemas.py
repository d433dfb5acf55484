"""Pydantic request models.

Character, library and encounter bodies are documents: the named fields are
validated, anything else passes through into the stored JSON.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Visibility = Literal["private", "campaign", "public"]
EncounterType = Literal["combat", "skill", "mixed"]
EncounterStatus = Literal["preparing", "active", "completed"]


class _Document(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def document(self) -> dict[str, Any]:
        """Fields the client actually sent, under their JSON names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


# --- Characters ---


class CharacterCreate(_Document):
    name: str = Field(min_length=1, max_length=100)
    level: int = Field(default=1, ge=1, le=20)
    duplicate_of: str | None = Field(default=None, alias="duplicateOf", max_length=64)

    def document(self) -> dict[str, Any]:
        data = super().document()
        data.pop("duplicateOf", None)
        data.setdefault("level", self.level)
        return data


class CharacterUpdate(_Document):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    level: int | None = Field(default=None, ge=1, le=20)
    visibility: Visibility | None = None


# --- Library ---


class LibraryItemCreate(_Document):
    name: str = Field(min_length=1, max_length=200)
    duplicate_of: str | None = Field(default=None, alias="duplicateOf", max_length=64)

    def document(self) -> dict[str, Any]:
        data = super().document()
        data.pop("duplicateOf", None)
        return data


class LibraryItemUpdate(_Document):
    name: str | None = Field(default=None, min_length=1, max_length=200)


class PublicItem(_Document):
    id: str | None = Field(default=None, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=200)


# --- Encounters ---


class EncounterCreate(_Document):
    name: str = Field(min_length=1, max_length=200)
    type: EncounterType = "combat"
    description: str | None = Field(default=None, max_length=5000)

    def document(self) -> dict[str, Any]:
        data = super().document()
        data.setdefault("type", self.type)
        return data


class EncounterUpdate(_Document):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    type: EncounterType | None = None
    description: str | None = Field(default=None, max_length=5000)
    combatants: list[dict[str, Any]] | None = None
    round: int | None = Field(default=None, ge=0)
    current_turn_index: int | None = Field(default=None, alias="currentTurnIndex")
    status: EncounterStatus | None = None
    is_active: bool | None = Field(default=None, alias="isActive")
    campaign_id: str | None = Field(default=None, alias="campaignId")
    apply_surprise: bool | None = Field(default=None, alias="applySurprise")
    skill_encounter: dict[str, Any] | None = Field(default=None, alias="skillEncounter")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class CreatureCombatantsCreate(BaseModel):
    creature_id: str = Field(min_length=1, max_length=64, alias="creatureId")
    quantity: int = Field(default=1, ge=1, le=26)
    combatant_type: Literal["ally", "enemy", "companion"] = Field(default="enemy", alias="combatantType")

    model_config = ConfigDict(populate_by_name=True)


# --- Campaigns ---


class CampaignCreate(BaseModel):
    name: str = Field(max_length=100)
    description: str | None = Field(default=None, max_length=5000)


class CampaignUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)


class CampaignJoin(BaseModel):
    invite_code: str = Field(alias="inviteCode")
    character_id: str = Field(alias="characterId")

    model_config = ConfigDict(populate_by_name=True)


class CampaignCharacterRef(BaseModel):
    character_id: str = Field(alias="characterId")
    user_id: str | None = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)


class Roll(BaseModel):
    type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    dice: list[Any] = Field(default_factory=list)
    modifier: int | float = 0
    total: int | float = 0
    is_crit: bool = Field(default=False, alias="isCrit")
    is_crit_fail: bool = Field(default=False, alias="isCritFail")
    crit_message: str | None = Field(default=None, alias="critMessage")

    model_config = ConfigDict(populate_by_name=True)


class CampaignRollCreate(BaseModel):
    character_id: str = Field(min_length=1, alias="characterId")
    character_name: str = Field(min_length=1, alias="characterName")
    roll: Roll

    model_config = ConfigDict(populate_by_name=True)


# --- Accounts ---


class ProfileCreate(BaseModel):
    username: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")

    model_config = ConfigDict(populate_by_name=True)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, alias="displayName", max_length=128)

    model_config = ConfigDict(populate_by_name=True)


class UsernameChange(BaseModel):
    username: str


class RoleUpdate(BaseModel):
    username: str
    role: str
