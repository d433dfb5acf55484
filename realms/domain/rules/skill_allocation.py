"""Skill point budgets and allocation costs."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from typing import Any

SKILL_VALUE_CAP = 3
BASE_SKILL_PAST_CAP_COST = 3
SUB_SKILL_PAST_CAP_COST = 2
DEFENSE_INCREASE_COST = 2

CHARACTER_SKILL_POINTS_PER_LEVEL = 3
CREATURE_SKILL_POINTS_BASE = 5
CREATURE_SKILL_POINTS_PER_LEVEL = 3

SPECIES_SKILL_COUNT = 2


def get_total_skill_points(level: float, entity_type: str) -> int:
    lvl = max(1, math.floor(level))
    if entity_type == "creature":
        return CREATURE_SKILL_POINTS_BASE + CREATURE_SKILL_POINTS_PER_LEVEL * (lvl - 1)
    return CHARACTER_SKILL_POINTS_PER_LEVEL * lvl


def get_skill_value_increase_cost(current_value: int, is_sub_skill: bool) -> int:
    if current_value < SKILL_VALUE_CAP:
        return 1
    return SUB_SKILL_PAST_CAP_COST if is_sub_skill else BASE_SKILL_PAST_CAP_COST


def get_proficiency_cost(is_sub_skill: bool) -> int:
    return 1


def get_skill_value_decrease_refund(current_value: int, is_sub_skill: bool) -> int:
    return 1


def can_increase_skill_value(
    current_value: int,
    is_proficient: bool,
    is_sub_skill: bool,
    base_skill_proficient: bool,
    available_points: int,
    is_species_skill: bool,
) -> bool:
    if is_species_skill or is_proficient:
        return available_points >= get_skill_value_increase_cost(current_value, is_sub_skill)
    # The first point buys proficiency; sub-skills need their base skill first.
    if is_sub_skill and not base_skill_proficient:
        return False
    return available_points >= 1


def can_decrease_skill_value(current_value: int, is_species_skill: bool) -> bool:
    if current_value <= 0:
        return False
    if is_species_skill:
        return current_value > 1
    return True


def can_increase_defense(
    current_defense_bonus: int, level: int, ability_bonus: int, available_points: int,
) -> bool:
    if current_defense_bonus + ability_bonus >= level:
        return False
    return available_points >= DEFENSE_INCREASE_COST


def _sub_skill_cost(value: int) -> int:
    return 1 + sum(get_skill_value_increase_cost(v - 1, True) for v in range(2, value + 1))


def calculate_skill_points_spent(
    allocations: Mapping[str, int],
    defense_skills: Mapping[str, int] | None,
    species_skill_ids: set[str],
    skill_data: Iterable[Mapping[str, Any]],
    get_base_skill_value: Callable[[str], int] | None = None,
) -> int:
    """Points spent on skills (``skill_data`` rows: ``id``, ``isSubSkill``) and defenses."""
    spent = 0
    for skill in skill_data:
        value = allocations.get(skill["id"], 0)
        if value <= 0:
            continue
        if skill["id"] in species_skill_ids:
            # proficiency is free for species skills
            spent += max(0, value - 1)
        elif skill.get("isSubSkill"):
            spent += _sub_skill_cost(value)
        else:
            spent += 1 + sum(get_skill_value_increase_cost(v, False) for v in range(1, value))

    spent += sum((defense_skills or {}).values()) * DEFENSE_INCREASE_COST
    return spent


def calculate_simple_skill_points_spent(
    allocations: Mapping[str, int],
    species_skill_ids: set[str],
    skill_meta: Mapping[str, Mapping[str, Any]],
    defense_skills: Mapping[str, int] | None = None,
) -> int:
    """Like :func:`calculate_skill_points_spent`, but value 0 means proficient only."""
    spent = 0
    for skill_id, value in allocations.items():
        if value < 0:
            continue
        is_sub_skill = bool((skill_meta.get(skill_id) or {}).get("isSubSkill"))
        if skill_id in species_skill_ids:
            spent += max(0, value - 1)
        elif is_sub_skill:
            spent += _sub_skill_cost(value)
        else:
            spent += 1 + sum(get_skill_value_increase_cost(v - 1, False) for v in range(1, value + 1))

    if defense_skills:
        spent += sum(defense_skills.values()) * DEFENSE_INCREASE_COST
    return spent
