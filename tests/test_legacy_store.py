"""Tests for reading and importing the legacy document export."""

import json

import pytest

from realms.domain.legacy_store import LegacyStore, import_legacy_characters, load_legacy_store
from realms.models.db_models import Character, UserProfile


TREE = {
    "users": {
        "u1": {
            "character": {
                "c1": {"name": "Kael", "health": {"current": 8}, "speed": 6},
                "broken": "not a document",
            },
            "library": {"powers": {"p1": {"name": "Bolt"}}},
        },
        "u2": {"character": {"c2": {"name": "Lyra"}}},
    }
}


def test_get_character_is_lean():
    store = LegacyStore(TREE)
    doc = store.get_character("u1", "c1")
    assert doc["currentHealth"] == 8
    assert "health" not in doc
    assert "speed" not in doc
    assert store.get_character("u1", "broken") is None
    assert store.get_character("nobody", "c1") is None


def test_find_and_list():
    store = LegacyStore(TREE)
    assert store.find_character("c2") == ("u2", {"name": "Lyra"})
    assert store.find_character("missing") is None
    assert [cid for cid, _ in store.list_characters("u1")] == ["c1"]
    assert store.get_library("u1", "powers") == {"p1": {"name": "Bolt"}}
    assert store.get_library("u2", "powers") == {}


def test_load_from_file(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps(TREE), encoding="utf-8")
    store = load_legacy_store(path)
    assert sorted(store.user_ids()) == ["u1", "u2"]
    assert load_legacy_store(path) is store


@pytest.mark.asyncio
async def test_import_legacy_characters(db_session):
    db_session.add(UserProfile(id="u2", username="lyra"))
    db_session.add(Character(id="c2", user_id="u2", data={"name": "Lyra"}))
    await db_session.commit()

    summary = await import_legacy_characters(db_session, LegacyStore(TREE))
    await db_session.commit()
    assert (summary.total, summary.imported, summary.skipped) == (2, 1, 1)
    assert summary.errors == []

    row = await db_session.get(Character, "c1")
    assert row.user_id == "u1"
    assert row.data["currentHealth"] == 8
    assert await db_session.get(UserProfile, "u1") is not None


@pytest.mark.asyncio
async def test_import_dry_run_writes_nothing(db_session):
    summary = await import_legacy_characters(db_session, LegacyStore(TREE), dry_run=True)
    assert summary.imported == 2
    assert await db_session.get(Character, "c1") is None
