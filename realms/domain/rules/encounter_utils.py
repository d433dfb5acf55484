"""Encounter helpers: skill-roll outcomes and creature health/energy."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from realms.domain.rules.formulas import calculate_health_energy_pool


def compute_skill_roll_result(roll: int, ds: int) -> dict[str, int]:
    """One success (or failure) for meeting the difficulty score, plus one per 5 beyond it."""
    if roll >= ds:
        return {"successes": 1 + (roll - ds) // 5, "failures": 0}
    return {"successes": 0, "failures": 1 + (ds - roll) // 5}


def calculate_creature_max_health(level: Any, vitality: int, hit_points: int) -> int:
    pool = calculate_health_energy_pool(level, "CREATURE")
    allocated = hit_points if hit_points > 0 else math.ceil(pool / 2)
    return allocated + (vitality or 0)


def calculate_creature_max_energy(level: Any, abilities: Mapping[str, Any], energy_points: int) -> int:
    pool = calculate_health_energy_pool(level, "CREATURE")
    allocated = energy_points if energy_points > 0 else math.floor(pool / 2)
    abilities = abilities or {}
    aptitude = abilities.get("aptitude", abilities.get("apt")) or 0
    resonance = abilities.get("resonance", abilities.get("res")) or 0
    return allocated + max(aptitude, resonance)
