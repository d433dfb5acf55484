"""SQLAlchemy ORM models for realms-core."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Naming convention for constraints, required for Alembic batch mode (SQLite)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)
    type_annotation_map = {dict[str, Any]: JSON, list[Any]: JSON}


class UserProfile(Base):
    """Profile of an auth-provider user; ``id`` is the provider's uid."""

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    photo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # "new_player", "playtester", "developer", "admin"
    role: Mapped[str] = mapped_column(String(16), default="new_player")
    last_username_change: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    username_lookups: Mapped[list[UsernameLookup]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    characters: Mapped[list[Character]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __str__(self) -> str:
        return f"{self.username or '?'} ({self.id[:8]})"


class UsernameLookup(Base):
    """Username → uid index, kept in step with ``UserProfile.username``."""

    __tablename__ = "usernames"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )

    user: Mapped[UserProfile] = relationship(back_populates="username_lookups")

    def __str__(self) -> str:
        return self.username

    __table_args__ = (
        Index("ix_usernames_user", "user_id"),
    )


class Character(Base):
    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=True
    )

    user: Mapped[UserProfile] = relationship(back_populates="characters")

    def __str__(self) -> str:
        return str((self.data or {}).get("name") or self.id)

    __table_args__ = (
        Index("ix_characters_user", "user_id"),
        Index("ix_characters_user_updated", "user_id", "updated_at"),
    )


# --- Library entries (one JSON document per row) ---


class UserPower(Base):
    __tablename__ = "user_powers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("ix_user_powers_user", "user_id"),)


class UserTechnique(Base):
    __tablename__ = "user_techniques"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("ix_user_techniques_user", "user_id"),)


class UserItem(Base):
    __tablename__ = "user_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("ix_user_items_user", "user_id"),)


class UserCreature(Base):
    __tablename__ = "user_creatures"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("ix_user_creatures_user", "user_id"),)


class PublicPower(Base):
    """Admin-curated entry of the public library."""

    __tablename__ = "public_powers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class PublicTechnique(Base):
    __tablename__ = "public_techniques"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class PublicItem(Base):
    __tablename__ = "public_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class PublicCreature(Base):
    __tablename__ = "public_creatures"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Campaign(Base):
    """A Realm Master's campaign; members and characters are JSON lists."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    invite_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    # [{userId, characterId, characterName, portrait, level, species, archetype, ownerUsername}]
    characters: Mapped[list[Any]] = mapped_column(nullable=False, default=list)
    member_ids: Mapped[list[Any]] = mapped_column(nullable=False, default=list)
    owner_username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    rolls: Mapped[list[CampaignRoll]] = relationship(
        back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )

    def __str__(self) -> str:
        return self.name

    __table_args__ = (
        Index("ix_campaigns_owner", "owner_id"),
    )


class CampaignRoll(Base):
    __tablename__ = "campaign_rolls"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    campaign: Mapped[Campaign] = relationship(back_populates="rolls")

    __table_args__ = (
        Index("ix_campaign_rolls_campaign", "campaign_id", "created_at"),
    )


class Encounter(Base):
    __tablename__ = "encounters"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __str__(self) -> str:
        return str((self.data or {}).get("name") or self.id)

    __table_args__ = (
        Index("ix_encounters_user", "user_id"),
    )


# --- Codex reference tables (seeded from CSV, edited by admins) ---


class CodexFeat(Base):
    __tablename__ = "codex_feats"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexSkill(Base):
    __tablename__ = "codex_skills"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexSpecies(Base):
    __tablename__ = "codex_species"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexTrait(Base):
    __tablename__ = "codex_traits"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexPart(Base):
    """Power or technique part; ``data.type`` tells which."""

    __tablename__ = "codex_parts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexProperty(Base):
    __tablename__ = "codex_properties"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexEquipment(Base):
    __tablename__ = "codex_equipment"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexArchetype(Base):
    __tablename__ = "codex_archetypes"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CodexCreatureFeat(Base):
    __tablename__ = "codex_creature_feats"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)


class CoreRules(Base):
    """One row per rules category (``COMBAT``, ``PROGRESSION_PLAYER``, ...)."""

    __tablename__ = "core_rules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


CODEX_TABLES: dict[str, type[Base]] = {
    "codex_feats": CodexFeat,
    "codex_skills": CodexSkill,
    "codex_species": CodexSpecies,
    "codex_traits": CodexTrait,
    "codex_parts": CodexPart,
    "codex_properties": CodexProperty,
    "codex_equipment": CodexEquipment,
    "codex_archetypes": CodexArchetype,
    "codex_creature_feats": CodexCreatureFeat,
}
