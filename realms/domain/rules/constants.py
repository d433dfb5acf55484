"""Game constants shared by the progression and stat formulas."""

from __future__ import annotations

from dataclasses import dataclass, field

# --- Shared progression ---
BASE_ABILITY_POINTS = 7
ABILITY_POINTS_PER_3_LEVELS = 1
BASE_SKILL_POINTS = 2
SKILL_POINTS_PER_LEVEL = 3
BASE_PROFICIENCY = 2
PROFICIENCY_PER_5_LEVELS = 1
HEALTH_ENERGY_PER_LEVEL = 12

# --- Player characters ---
PLAYER_BASE_HEALTH_ENERGY = 18
PLAYER_BASE_TRAINING_POINTS = 22
PLAYER_TP_PER_LEVEL_MULTIPLIER = 2

# --- Creatures ---
CREATURE_BASE_HEALTH_ENERGY = 26
CREATURE_BASE_TRAINING_POINTS = 9
CREATURE_TP_PER_LEVEL = 1
CREATURE_BASE_FEAT_POINTS = 4
CREATURE_FEAT_POINTS_PER_LEVEL = 1
CREATURE_BASE_CURRENCY = 200
CREATURE_CURRENCY_GROWTH = 1.45

# --- Abilities ---
ABILITY_MIN = -2
ABILITY_MAX_STARTING = 3
ABILITY_MAX_ABSOLUTE = 6
ABILITY_COST_INCREASE_THRESHOLD = 4

ABILITY_NAMES = ("strength", "vitality", "agility", "acuity", "intelligence", "charisma")

# --- Skills ---
SKILL_MAX_PER_SKILL = 3
SKILL_DEFENSE_MAX = 3

# --- Combat ---
BASE_SPEED = 6
BASE_EVASION = 10
BASE_DEFENSE = 10
BASE_HEALTH = 8

# Defense name → ability it scales with
DEFENSE_ABILITIES = {
    "might": "strength",
    "fortitude": "vitality",
    "reflex": "agility",
    "discernment": "acuity",
    "mentalFortitude": "intelligence",
    "resolve": "charisma",
}


@dataclass(frozen=True)
class ArchetypeConfig:
    feat_limit: int
    armament_max: int
    innate_energy: int
    proficiency: dict[str, int] = field(default_factory=dict)
    training_point_bonus: int = 0


ARCHETYPE_CONFIGS: dict[str, ArchetypeConfig] = {
    "power": ArchetypeConfig(
        feat_limit=1, armament_max=4, innate_energy=8,
        proficiency={"martial": 0, "power": 2},
    ),
    "powered-martial": ArchetypeConfig(
        feat_limit=2, armament_max=8, innate_energy=6,
        proficiency={"martial": 1, "power": 1},
    ),
    "martial": ArchetypeConfig(
        feat_limit=3, armament_max=16, innate_energy=0,
        proficiency={"martial": 2, "power": 0},
    ),
}

ARCHETYPE_DISPLAY_NAMES = {
    "power": "Power",
    "martial": "Martial",
    "powered-martial": "Powered-Martial",
}
