"""Tests for the lean character migration."""

import copy
from datetime import datetime, timezone

import pytest

from realms.domain.lean import (
    migrate_all_characters,
    migrate_character_data,
    prepare_for_save,
    strip_equipment_item,
    strip_power,
)
from realms.models.db_models import Character, UserProfile


LEGACY_DOC = {
    "name": "Kael",
    "level": 3,
    "species": "Human",
    "health": {"current": 14, "max": 20},
    "energy": {"current": 5, "max": 9},
    "health_energy_points": {"health": 4, "energy": 2},
    "archetype": {"id": "arch-1", "type": "power", "name": "Power", "pow_abil": "charisma"},
    "feats": [
        {"id": "f1", "name": "Tough", "description": "long text", "currentUses": 1},
        "Alert",
    ],
    "powers": [{"id": "p1", "name": "Bolt", "parts": [1, 2], "innate": True}],
    "techniques": [{"id": "t1", "name": "Sweep", "cost": 3}],
    "equipment": {
        "weapons": [{"id": "w1", "name": "Sword", "damage": "1d8", "equipped": True, "quantity": 1}],
        "items": [{"name": "Rope", "quantity": 2}],
        "inventory": [{"name": "old"}],
    },
    "skills": {"athletics": 2, "stealth": 0},
    "martialProficiency": 1,
    "defenseSkills": {"might": 1},
    "speed": 7,
    "evasion": 11,
    "allTraits": ["x"],
}


def test_health_pool_becomes_current_health():
    lean, changes = migrate_character_data({"name": "A", "health": {"current": 12, "max": 20}})
    assert lean["currentHealth"] == 12
    assert "health" not in lean
    assert "health.current → currentHealth" in changes


def test_existing_current_health_wins():
    lean, _ = migrate_character_data({"currentHealth": 3, "health": {"current": 12}})
    assert lean["currentHealth"] == 3
    assert "health" not in lean


def test_full_legacy_document():
    lean, changes = migrate_character_data(LEGACY_DOC)

    assert lean["currentHealth"] == 14
    assert lean["currentEnergy"] == 5
    assert lean["healthPoints"] == 4
    assert lean["energyPoints"] == 2
    assert lean["ancestry"] == {"name": "Human"}
    assert "species" not in lean
    assert lean["archetype"] == {"id": "arch-1", "type": "power"}
    assert lean["feats"] == [{"id": "f1", "name": "Tough", "currentUses": 1}, {"name": "Alert"}]
    assert lean["powers"] == [{"id": "p1", "name": "Bolt", "innate": True}]
    assert lean["techniques"] == [{"id": "t1", "name": "Sweep"}]
    assert lean["equipment"]["weapons"] == [{"id": "w1", "name": "Sword", "equipped": True}]
    assert lean["equipment"]["items"] == [{"name": "Rope", "quantity": 2}]
    assert "inventory" not in lean["equipment"]
    assert lean["skills"] == [{"id": "athletics", "skill_val": 2, "prof": True}]
    assert lean["mart_prof"] == 1
    assert lean["defenseVals"] == {"might": 1}
    for gone in ("martialProficiency", "defenseSkills", "speed", "evasion", "allTraits",
                 "health_energy_points", "health", "energy"):
        assert gone not in lean
    assert changes


def test_migration_is_idempotent():
    once, changes = migrate_character_data(LEGACY_DOC)
    assert changes
    twice, second_changes = migrate_character_data(once)
    assert second_changes == []
    assert twice == once


def test_ancestry_without_lean_keys_is_left_alone():
    doc = {"name": "A", "ancestry": {"size": "Medium", "speed": 6}}
    lean, changes = migrate_character_data(doc)
    assert changes == []
    assert lean == doc


def test_input_is_not_mutated():
    original = copy.deepcopy(LEGACY_DOC)
    migrate_character_data(LEGACY_DOC)
    assert LEGACY_DOC == original


def test_lean_document_reports_nothing():
    doc = {"name": "Lean", "archetype": {"id": "a", "type": "martial"}, "feats": [{"id": "f", "name": "F"}]}
    lean, changes = migrate_character_data(doc)
    assert changes == []
    assert lean == doc


def test_non_mapping_passes_through():
    assert migrate_character_data(None) == (None, [])


def test_strippers():
    assert strip_power("Fireball") == {"name": "Fireball", "innate": False}
    assert strip_equipment_item({"name": "Arrow", "quantity": 20, "weight": 1}) == {"name": "Arrow", "quantity": 20}
    assert strip_equipment_item({"weight": 1}) is None


def test_prepare_for_save_drops_identity_and_nulls():
    now = datetime(2026, 1, 2, tzinfo=timezone.utc)
    cleaned = prepare_for_save(
        {"id": "x", "createdAt": "old", "name": "A", "notes": None,
         "abilities": {"strength": 1, "agility": None}, "defenses": {}},
        now,
    )
    assert cleaned == {"name": "A", "abilities": {"strength": 1}, "updatedAt": now.isoformat()}


@pytest.mark.asyncio
async def test_migrate_all_characters(db_session):
    db_session.add(UserProfile(id="u1", username="kael"))
    db_session.add(Character(id="c-legacy", user_id="u1", data=copy.deepcopy(LEGACY_DOC)))
    db_session.add(Character(id="c-lean", user_id="u1", data={"name": "Lean"}))
    await db_session.commit()

    summary = await migrate_all_characters(db_session)
    await db_session.commit()
    assert (summary.total, summary.migrated, summary.skipped) == (2, 1, 1)
    assert summary.errors == []

    row = await db_session.get(Character, "c-legacy")
    assert row.data["currentHealth"] == 14

    again = await migrate_all_characters(db_session)
    assert again.migrated == 0
    assert again.skipped == 2


@pytest.mark.asyncio
async def test_migrate_all_characters_dry_run(db_session):
    db_session.add(UserProfile(id="u1", username="kael"))
    db_session.add(Character(id="c1", user_id="u1", data={"name": "Old", "speed": 6}))
    await db_session.commit()

    summary = await migrate_all_characters(db_session, dry_run=True)
    assert summary.migrated == 1
    row = await db_session.get(Character, "c1")
    assert row.data["speed"] == 6
