"""Derived character statistics (defenses, health, energy, speed...).

``rules`` is the core-rules map loaded from the ``core_rules`` table, keyed by
category (``COMBAT``, ``PROGRESSION_PLAYER``, ...). Values found there take
precedence over the built-in constants.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from realms.domain.rules import constants as C
from realms.domain.rules.formulas import parse_level, unproficient_bonus

Rules = Mapping[str, Mapping[str, Any]]


def _rule(rules: Rules | None, category: str, key: str, default: Any) -> Any:
    value = ((rules or {}).get(category) or {}).get(key)
    return default if value is None else value


def calculate_defenses(
    abilities: Mapping[str, Any] | None,
    defense_vals: Mapping[str, Any] | None,
    rules: Rules | None = None,
) -> dict[str, dict[str, int]]:
    a = abilities or {}
    d = defense_vals or {}
    base = _rule(rules, "COMBAT", "baseDefense", C.BASE_DEFENSE)

    bonuses = {
        defense: (a.get(ability) or 0) + (d.get(defense) or 0)
        for defense, ability in C.DEFENSE_ABILITIES.items()
    }
    scores = {defense: base + bonus for defense, bonus in bonuses.items()}
    return {"defenseBonuses": bonuses, "defenseScores": scores}


def calculate_speed(agility: int, speed_base: int | None = None, rules: Rules | None = None) -> int:
    if speed_base is None:
        speed_base = _rule(rules, "COMBAT", "baseSpeed", C.BASE_SPEED)
    return speed_base + math.ceil(agility / 2)


def calculate_evasion(agility: int, evasion_base: int | None = None, rules: Rules | None = None) -> int:
    if evasion_base is None:
        evasion_base = _rule(rules, "COMBAT", "baseEvasion", C.BASE_EVASION)
    return evasion_base + agility


def calculate_max_health(
    health_points: int,
    vitality: int,
    level: int,
    archetype_ability: str | None,
    abilities: Mapping[str, Any] | None,
    rules: Rules | None = None,
) -> int:
    """8 + ability × level + allocated points.

    The ability is vitality, or strength when vitality already fuels the
    archetype. A negative ability is applied once instead of per level.
    """
    base = _rule(rules, "PROGRESSION_PLAYER", "baseHealth", C.BASE_HEALTH)
    if (archetype_ability or "").lower() == "vitality":
        ability = (abilities or {}).get("strength") or 0
    else:
        ability = vitality
    if ability < 0:
        return base + ability + health_points
    return base + ability * level + health_points


def calculate_max_energy(
    energy_points: int,
    archetype_ability: str | None,
    abilities: Mapping[str, Any] | None,
    level: int,
) -> int:
    ability = (abilities or {}).get((archetype_ability or "").lower()) or 0
    return ability * level + energy_points


def _pow_abil(char_data: Mapping[str, Any]) -> str | None:
    archetype = char_data.get("archetype") or {}
    return char_data.get("pow_abil") or archetype.get("pow_abil") or archetype.get("ability")


def _mart_abil(char_data: Mapping[str, Any]) -> str | None:
    archetype = char_data.get("archetype") or {}
    return char_data.get("mart_abil") or archetype.get("mart_abil")


def get_archetype_ability_score(char_data: Mapping[str, Any]) -> int:
    abilities = char_data.get("abilities")
    if not abilities:
        return 0
    pow_abil = _pow_abil(char_data)
    mart_abil = _mart_abil(char_data)
    pow_val = (abilities.get(pow_abil.lower()) or 0) if pow_abil else 0
    mart_val = (abilities.get(mart_abil.lower()) or 0) if mart_abil else 0
    return max(pow_val, mart_val)


def calculate_bonuses(
    mart_prof: int,
    pow_prof: int,
    abilities: Mapping[str, Any] | None,
    pow_abil: str | None = None,
) -> dict[str, Any]:
    """Attack bonuses, proficient and unproficient, per attack ability."""
    a = abilities or {}
    mart = mart_prof or 0
    pow_ = pow_prof or 0
    power_value = (a.get(pow_abil.lower()) or 0) if pow_abil else (a.get("charisma") or 0)

    bonuses: dict[str, Any] = {"martial": mart, "power": pow_}
    for ability in ("strength", "agility", "acuity"):
        value = a.get(ability) or 0
        bonuses[ability] = {"prof": mart + value, "unprof": unproficient_bonus(value)}
    bonuses["powerAttack"] = {"prof": pow_ + power_value, "unprof": unproficient_bonus(power_value)}
    return bonuses


def calculate_terminal(max_health: int) -> int:
    return math.ceil(max_health / 4)


def calculate_all_stats(character: Mapping[str, Any], rules: Rules | None = None) -> dict[str, Any]:
    abilities = character.get("abilities") or {name: 0 for name in C.ABILITY_NAMES}
    defense_vals = {
        **{name: 0 for name in C.DEFENSE_ABILITIES},
        **(character.get("defenseSkills") or {}),
        **(character.get("defenseVals") or {}),
    }
    defenses = calculate_defenses(abilities, defense_vals, rules)

    agility = abilities.get("agility") or 0
    speed = calculate_speed(agility, character.get("speedBase"), rules)
    evasion = calculate_evasion(agility, character.get("evasionBase"), rules)

    armor_items = (character.get("equipment") or {}).get("armor") or []
    armor = sum(
        item.get("armor") or 0
        for item in armor_items
        if isinstance(item, Mapping) and item.get("equipped")
    )

    level = parse_level(character.get("level"))
    pow_abil = _pow_abil(character)
    mart_abil = _mart_abil(character)
    max_health = calculate_max_health(
        character.get("healthPoints") or 0, abilities.get("vitality") or 0,
        level, pow_abil, abilities, rules,
    )
    max_energy = calculate_max_energy(
        character.get("energyPoints") or 0, pow_abil or mart_abil, abilities, level,
    )

    return {
        "maxHealth": max_health,
        "maxEnergy": max_energy,
        "terminal": calculate_terminal(max_health),
        "speed": speed,
        "evasion": evasion,
        "armor": armor,
        **defenses,
    }


def compute_max_health_energy(char_data: Mapping[str, Any], rules: Rules | None = None) -> dict[str, int]:
    """Max health/energy straight from a stored document (accepts ``acu``/``agi`` keys)."""
    raw = char_data.get("abilities") or {}
    abilities = {
        **raw,
        "acuity": raw.get("acuity", raw.get("acu", 0)),
        "agility": raw.get("agility", raw.get("agi", 0)),
    }
    level = parse_level(char_data.get("level"))
    archetype = char_data.get("archetype") or {}
    pow_abil = archetype.get("pow_abil")
    mart_abil = archetype.get("mart_abil")

    max_health = calculate_max_health(
        char_data.get("healthPoints") or 0, abilities.get("vitality") or 0,
        level, pow_abil, abilities, rules,
    )
    max_energy = calculate_max_energy(
        char_data.get("energyPoints") or 0, pow_abil or mart_abil, abilities, level,
    )
    return {"maxHealth": max_health, "maxEnergy": max_energy}
