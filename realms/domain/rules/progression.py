"""Progression snapshots and level-up deltas for players and creatures."""

from __future__ import annotations

from typing import Any

from realms.domain.rules.formulas import (
    calculate_ability_points,
    calculate_creature_currency,
    calculate_creature_training_points,
    calculate_health_energy_pool,
    calculate_max_archetype_feats,
    calculate_max_character_feats,
    calculate_proficiency,
    calculate_skill_points,
    calculate_training_points,
    parse_level,
)


def get_player_progression(level: Any, highest_archetype_ability: int = 0) -> dict[str, Any]:
    lvl = parse_level(level)
    return {
        "level": lvl,
        "abilityPoints": calculate_ability_points(lvl),
        "skillPoints": calculate_skill_points(lvl),
        "healthEnergyPool": calculate_health_energy_pool(lvl, "PLAYER"),
        "trainingPoints": calculate_training_points(lvl, highest_archetype_ability),
        "proficiency": calculate_proficiency(lvl),
        "maxArchetypeFeats": calculate_max_archetype_feats(lvl),
        "maxCharacterFeats": calculate_max_character_feats(lvl),
    }


def get_creature_progression(level: Any, highest_non_vitality: int = 0) -> dict[str, Any]:
    lvl = parse_level(level)
    return {
        "level": lvl,
        "abilityPoints": calculate_ability_points(lvl, True),
        "skillPoints": calculate_skill_points(lvl, True),
        "healthEnergyPool": calculate_health_energy_pool(lvl, "CREATURE", True),
        "trainingPoints": calculate_creature_training_points(lvl, highest_non_vitality),
        "proficiency": calculate_proficiency(lvl, True),
        "currency": calculate_creature_currency(lvl),
    }


def _snapshot(level: Any, ability: int, entity_type: str) -> dict[str, Any]:
    creature = entity_type == "CREATURE"
    if creature:
        training = calculate_creature_training_points(level, ability)
    else:
        training = calculate_training_points(level, ability)
    return {
        "abilityPoints": calculate_ability_points(level, creature),
        "skillPoints": calculate_skill_points(level, creature),
        "healthEnergyPool": calculate_health_energy_pool(level, entity_type, creature),
        "trainingPoints": training,
        "proficiency": calculate_proficiency(level, creature),
    }


def get_level_difference(
    from_level: Any, to_level: Any, highest_ability: int = 0, entity_type: str = "PLAYER",
) -> dict[str, Any]:
    """Points gained (or lost) moving from ``from_level`` to ``to_level``."""
    before = _snapshot(from_level, highest_ability, entity_type)
    after = _snapshot(to_level, highest_ability, entity_type)
    return {key: after[key] - before[key] for key in after}
