"""Tests for the character API: ownership, visibility, limits and stats."""

import json

import pytest
from httpx import AsyncClient

from realms.infra.config import settings
from realms.models.db_models import Character, CodexSkill, CodexSpecies
from tests.conftest import auth_headers, create_character


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "engine": "realms"}


@pytest.mark.asyncio
async def test_create_and_list(client: AsyncClient):
    char_id = await create_character(
        client, "u1", "Aria", level=2,
        archetype={"id": "a1", "type": "powered-martial"}, ancestry={"name": "Elf"},
    )

    resp = await client.get("/api/characters", headers=auth_headers("u1"))
    assert resp.status_code == 200
    [summary] = resp.json()
    assert summary["id"] == char_id
    assert summary["name"] == "Aria"
    assert summary["level"] == 2
    assert summary["archetypeName"] == "Powered Martial"
    assert summary["ancestryName"] == "Elf"
    assert summary["visibility"] == "private"


@pytest.mark.asyncio
async def test_create_requires_auth_and_valid_body(client: AsyncClient):
    resp = await client.post("/api/characters", json={"name": "X"})
    assert resp.status_code == 401
    resp = await client.post("/api/characters", json={"name": ""}, headers=auth_headers("u1"))
    assert resp.status_code == 422
    resp = await client.post("/api/characters", json={"name": "X", "level": 21}, headers=auth_headers("u1"))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_own_character(client: AsyncClient):
    char_id = await create_character(client, "u1", "Aria", abilities={"vitality": 2})
    resp = await client.get(f"/api/characters/{char_id}", headers=auth_headers("u1"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == char_id
    assert data["userId"] == "u1"
    assert data["abilities"] == {"vitality": 2}


@pytest.mark.asyncio
async def test_private_character_hidden_from_others(client: AsyncClient):
    char_id = await create_character(client, "u1")
    resp = await client.get(f"/api/characters/{char_id}", headers=auth_headers("u2"))
    assert resp.status_code == 403
    resp = await client.get(f"/api/characters/{char_id}")
    assert resp.status_code == 403
    resp = await client.get("/api/characters/missing", headers=auth_headers("u1"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_public_character_visible_with_library(client: AsyncClient):
    char_id = await create_character(client, "u1")
    await client.post("/api/user/library/powers", json={"name": "Bolt"}, headers=auth_headers("u1"))
    resp = await client.patch(f"/api/characters/{char_id}", json={"visibility": "public"},
                              headers=auth_headers("u1"))
    assert resp.status_code == 200

    resp = await client.get(f"/api/characters/{char_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["character"]["id"] == char_id
    assert [p["name"] for p in data["libraryForView"]["powers"]] == ["Bolt"]


@pytest.mark.asyncio
async def test_update_merges_and_strips_unsaved_fields(client: AsyncClient, db_session):
    char_id = await create_character(client, "u1", "Aria", notes="keep")
    resp = await client.patch(
        f"/api/characters/{char_id}",
        json={"level": 3, "defenses": {"might": 12}, "currentHealth": 7},
        headers=auth_headers("u1"),
    )
    assert resp.status_code == 200

    row = await db_session.get(Character, char_id)
    assert row.data["level"] == 3
    assert row.data["notes"] == "keep"
    assert row.data["currentHealth"] == 7
    assert "defenses" not in row.data


@pytest.mark.asyncio
async def test_other_user_cannot_update_or_delete(client: AsyncClient):
    char_id = await create_character(client, "u1")
    resp = await client.patch(f"/api/characters/{char_id}", json={"name": "Stolen"}, headers=auth_headers("u2"))
    assert resp.status_code == 404
    resp = await client.delete(f"/api/characters/{char_id}", headers=auth_headers("u2"))
    assert resp.status_code == 404
    resp = await client.delete(f"/api/characters/{char_id}", headers=auth_headers("u1"))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_character(client: AsyncClient):
    char_id = await create_character(client, "u1", "Aria", level=4)
    resp = await client.post("/api/characters", json={"name": "ignored", "duplicateOf": char_id},
                             headers=auth_headers("u1"))
    assert resp.status_code == 200
    copy_id = resp.json()["id"]
    data = (await client.get(f"/api/characters/{copy_id}", headers=auth_headers("u1"))).json()
    assert data["name"] == "Aria (Copy)"
    assert data["level"] == 4

    resp = await client.post("/api/characters", json={"name": "x", "duplicateOf": "nope"},
                             headers=auth_headers("u1"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_role_character_limit(client: AsyncClient):
    for i in range(3):
        await create_character(client, "u1", f"C{i}")
    resp = await client.post("/api/characters", json={"name": "One too many"}, headers=auth_headers("u1"))
    assert resp.status_code == 400
    assert "maximum of 3 characters" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_character_stats(client: AsyncClient):
    char_id = await create_character(client, "u1", "Aria", abilities={"vitality": 2, "agility": 1})
    resp = await client.get(f"/api/characters/{char_id}/stats", headers=auth_headers("u1"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["stats"]["maxHealth"] == 10
    assert data["stats"]["evasion"] == 11
    assert data["progression"]["level"] == 1

    resp = await client.get(f"/api/characters/{char_id}/stats", headers=auth_headers("u2"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_create_is_rate_limited(client: AsyncClient, monkeypatch):
    from realms.infra.rate_limit import standard_limiter

    monkeypatch.setattr(standard_limiter, "limit", 1)
    await create_character(client, "u1")
    resp = await client.post("/api/characters", json={"name": "B"}, headers=auth_headers("u1"))
    assert resp.status_code == 429
    assert resp.headers["retry-after"] == "60"


@pytest.mark.asyncio
async def test_legacy_characters_are_served_read_only(client: AsyncClient, tmp_path, monkeypatch):
    export = tmp_path / "legacy.json"
    export.write_text(json.dumps({"users": {"u-old": {"character": {
        "legacy-1": {"name": "Old Hero", "visibility": "public", "health": {"current": 9}},
    }}}}))
    monkeypatch.setattr(settings, "legacy_export_path", export)

    resp = await client.get("/api/characters", headers=auth_headers("u-old"))
    assert [c["id"] for c in resp.json()] == ["legacy-1"]

    resp = await client.get("/api/characters/legacy-1", headers=auth_headers("u-old"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["currentHealth"] == 9
    assert "health" not in data

    resp = await client.patch("/api/characters/legacy-1", json={"name": "New"}, headers=auth_headers("u-old"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_character_stats_skill_point_budget(client: AsyncClient, db_session):
    db_session.add_all([
        CodexSpecies(id="s1", data={"name": "Elf", "skills": ["athletics", "0"]}),
        CodexSkill(id="athletics", data={"name": "Athletics"}),
        CodexSkill(id="climb", data={"name": "Climb", "base_skill_id": "1"}),
    ])
    await db_session.commit()

    char_id = await create_character(
        client, "u1", "Aria",
        ancestry={"id": "s1", "name": "Elf"},
        skills=[
            {"id": "athletics", "skill_val": 2, "prof": True},
            {"id": "climb", "skill_val": 1, "prof": True},
        ],
        defenseVals={"might": 1},
    )
    resp = await client.get(f"/api/characters/{char_id}/stats", headers=auth_headers("u1"))
    # 3 per level plus 1 for the any-skill species grant; athletics 1 past the free
    # species proficiency, climb 1 as a sub-skill, one defense point 2
    assert resp.json()["skillPoints"] == {"total": 4, "spent": 4, "remaining": 0}


@pytest.mark.asyncio
async def test_stats_without_codex_still_budget_skills(client: AsyncClient):
    char_id = await create_character(client, "u1", "Aria", level=2,
                                     skills=[{"id": "athletics", "skill_val": 0, "prof": True}])
    resp = await client.get(f"/api/characters/{char_id}/stats", headers=auth_headers("u1"))
    assert resp.json()["skillPoints"] == {"total": 6, "spent": 1, "remaining": 5}
