"""Level progression and ability/skill arithmetic.

Pure functions, no I/O. Levels arrive from JSON documents and may be strings,
floats or missing; anything that does not parse to a non-zero number is
treated as level 1. Creatures may have fractional ("sub") levels below 1.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from realms.domain.rules import constants as C


def parse_level(level: Any) -> int | float:
    try:
        value = float(level)
    except (TypeError, ValueError):
        return 1
    if math.isnan(value) or value == 0:
        return 1
    return int(value) if value.is_integer() else value


# --- Level progression ---


def calculate_ability_points(level: Any, allow_sub_level: bool = False) -> int:
    lvl = parse_level(level)
    if allow_sub_level and lvl < 1:
        return math.ceil(C.BASE_ABILITY_POINTS * lvl)
    if lvl < 1:
        return 0
    if lvl < 3:
        return C.BASE_ABILITY_POINTS
    bonus = math.floor((lvl - 1) / 3) * C.ABILITY_POINTS_PER_3_LEVELS
    return C.BASE_ABILITY_POINTS + bonus


def calculate_skill_points(level: Any, allow_sub_level: bool = False) -> int:
    lvl = parse_level(level)
    if allow_sub_level and lvl < 1:
        return math.ceil(5 * lvl)
    return C.BASE_SKILL_POINTS + C.SKILL_POINTS_PER_LEVEL * math.floor(lvl)


def calculate_health_energy_pool(
    level: Any, entity_type: str = "PLAYER", allow_sub_level: bool = False,
) -> int | float:
    lvl = parse_level(level)
    base = C.CREATURE_BASE_HEALTH_ENERGY if entity_type == "CREATURE" else C.PLAYER_BASE_HEALTH_ENERGY
    if allow_sub_level and lvl < 1:
        return math.ceil(base * lvl)
    return base + C.HEALTH_ENERGY_PER_LEVEL * (lvl - 1)


def calculate_proficiency(level: Any, allow_sub_level: bool = False) -> int:
    lvl = parse_level(level)
    if allow_sub_level and lvl < 1:
        return math.ceil(C.BASE_PROFICIENCY * lvl)
    if lvl < 1:
        return 0
    if lvl < 5:
        return C.BASE_PROFICIENCY
    return C.BASE_PROFICIENCY + math.floor(lvl / 5) * C.PROFICIENCY_PER_5_LEVELS


def calculate_training_points(level: Any, highest_archetype_ability: int = 0) -> int | float:
    """22 + a + (2 + a)(L - 1) where ``a`` is the highest archetype ability."""
    lvl = parse_level(level)
    ability = highest_archetype_ability or 0
    per_level = C.PLAYER_TP_PER_LEVEL_MULTIPLIER + ability
    return C.PLAYER_BASE_TRAINING_POINTS + ability + per_level * (lvl - 1)


def calculate_creature_training_points(level: Any, highest_non_vitality: int = 0) -> int | float:
    lvl = parse_level(level)
    ability = highest_non_vitality or 0
    if lvl < 1:
        return math.ceil(22 * lvl) + ability
    base = C.CREATURE_BASE_TRAINING_POINTS + ability
    if lvl <= 1:
        return base
    return base + (lvl - 1) * (C.CREATURE_TP_PER_LEVEL + ability)


def calculate_creature_feat_points(level: Any, martial_proficiency: int = 0) -> int | float:
    lvl = parse_level(level)
    martial = martial_proficiency or 0
    if lvl < 1:
        return math.ceil((1.5 + martial) * lvl)
    return 1.5 + martial + (lvl - 1 if lvl > 1 else 0)


def calculate_creature_currency(level: Any) -> int:
    lvl = parse_level(level)
    return round(C.CREATURE_BASE_CURRENCY * C.CREATURE_CURRENCY_GROWTH ** (lvl - 1))


def calculate_max_archetype_feats(level: float) -> int:
    return max(0, math.floor(level))


def calculate_max_character_feats(level: float) -> int:
    return max(0, math.floor(level))


# --- Abilities ---


def get_ability_increase_cost(current_value: int) -> int:
    return 2 if current_value >= C.ABILITY_COST_INCREASE_THRESHOLD else 1


def can_increase_ability(current_value: int, available_points: int, is_creation: bool = True) -> bool:
    limit = C.ABILITY_MAX_STARTING if is_creation else C.ABILITY_MAX_ABSOLUTE
    if current_value >= limit:
        return False
    return available_points >= get_ability_increase_cost(current_value)


def can_decrease_ability(current_value: int) -> bool:
    return current_value > C.ABILITY_MIN


# --- Archetypes ---


def _archetype_type(archetype: str | Mapping[str, Any] | None) -> str:
    if isinstance(archetype, str):
        return archetype or "power"
    return (archetype or {}).get("type") or "power"


def get_archetype_config(archetype_type: str | None) -> C.ArchetypeConfig:
    return C.ARCHETYPE_CONFIGS.get(archetype_type or "power", C.ARCHETYPE_CONFIGS["power"])


def get_armament_max(archetype: str | Mapping[str, Any] | None) -> int:
    return get_archetype_config(_archetype_type(archetype)).armament_max


def get_archetype_feat_limit(archetype: str | Mapping[str, Any] | None) -> int:
    return get_archetype_config(_archetype_type(archetype)).feat_limit


def get_innate_energy_max(archetype: str | Mapping[str, Any] | None) -> int:
    return get_archetype_config(_archetype_type(archetype)).innate_energy


def _ability_value(abilities: Mapping[str, Any], name: str | None) -> int:
    if not name:
        return 0
    return abilities.get(name.lower()) or 0


def get_archetype_ability(archetype: Mapping[str, Any] | None, abilities: Mapping[str, Any]) -> int:
    """Score of the ability that fuels the archetype (the higher one for powered-martial)."""
    if not archetype or not archetype.get("type"):
        return 0
    if archetype["type"] == "powered-martial":
        return max(
            _ability_value(abilities, archetype.get("pow_abil")),
            _ability_value(abilities, archetype.get("mart_abil")),
        )
    return _ability_value(abilities, archetype.get("pow_abil") or archetype.get("mart_abil"))


def get_base_health(archetype: Mapping[str, Any] | None, abilities: Mapping[str, Any]) -> int:
    archetype = archetype or {}
    vitality_archetype = any(
        (archetype.get(key) or "").lower() == "vitality" for key in ("pow_abil", "mart_abil")
    )
    if vitality_archetype:
        return C.BASE_HEALTH + (abilities.get("strength") or 0)
    return C.BASE_HEALTH + (abilities.get("vitality") or 0)


def get_base_energy(archetype: Mapping[str, Any] | None, abilities: Mapping[str, Any]) -> int:
    return get_archetype_ability(archetype, abilities)


# --- Skills ---


def get_highest_linked_ability(
    linked_abilities: str | Iterable[str] | None, abilities: Mapping[str, Any],
) -> int:
    """Highest score among a skill's linked abilities (``"strength, agility"`` or a list)."""
    if not linked_abilities:
        return 0
    if isinstance(linked_abilities, str):
        names = [a.strip() for a in linked_abilities.split(",")]
    else:
        names = list(linked_abilities)

    values = [
        abilities[name.lower()]
        for name in names
        if name.lower() in C.ABILITY_NAMES and abilities.get(name.lower()) is not None
    ]
    return max(values) if values else 0


def calculate_skill_bonus(
    linked_abilities: str | Iterable[str] | None, skill_value: int, abilities: Mapping[str, Any],
) -> int:
    return get_highest_linked_ability(linked_abilities, abilities) + skill_value


def unproficient_bonus(ability_value: int) -> int:
    """Negative abilities count double, positive ones half (rounded up)."""
    if ability_value < 0:
        return ability_value * 2
    return math.ceil(ability_value / 2)


def calculate_skill_bonus_with_proficiency(
    linked_abilities: str | Iterable[str] | None,
    skill_value: int,
    abilities: Mapping[str, Any],
    is_proficient: bool = False,
) -> int:
    ability = get_highest_linked_ability(linked_abilities, abilities)
    if is_proficient:
        return ability + skill_value + 1
    return unproficient_bonus(ability)
