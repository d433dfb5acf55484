"""Tests for the encounter tracker API."""

import random

import pytest
from httpx import AsyncClient

from realms.domain import encounters as enc_mod
from realms.models.db_models import CoreRules
from tests.conftest import auth_headers


async def _create(client, uid, **fields):
    resp = await client.post("/api/encounters", json={"name": "Ambush", **fields}, headers=auth_headers(uid))
    assert resp.status_code == 200, resp.text
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_create_fills_defaults(client: AsyncClient):
    enc_id = await _create(client, "rm")
    resp = await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))
    data = resp.json()
    assert data["name"] == "Ambush"
    assert data["type"] == "combat"
    assert data["status"] == "preparing"
    assert data["combatants"] == []
    assert data["round"] == 0
    assert data["currentTurnIndex"] == -1
    assert data["isActive"] is False
    assert data["campaignId"] is None


@pytest.mark.asyncio
async def test_create_rejects_unknown_type(client: AsyncClient):
    resp = await client.post("/api/encounters", json={"name": "X", "type": "social"}, headers=auth_headers("rm"))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_merges_state(client: AsyncClient):
    enc_id = await _create(client, "rm", type="mixed", campaignId="camp-1")
    combatants = [{"id": "a", "name": "Goblin", "initiative": 12}, {"id": "b", "name": "Bram"}]
    resp = await client.patch(
        f"/api/encounters/{enc_id}",
        json={"combatants": combatants, "round": 2, "isActive": True, "campaignId": None,
              "skillEncounter": {"participants": [{"id": "p"}]}},
        headers=auth_headers("rm"),
    )
    assert resp.status_code == 204
    assert resp.content == b""

    data = (await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))).json()
    assert data["type"] == "mixed"
    assert data["round"] == 2
    assert data["isActive"] is True
    assert data["campaignId"] is None
    assert len(data["combatants"]) == 2

    [summary] = (await client.get("/api/encounters", headers=auth_headers("rm"))).json()
    assert summary["combatantCount"] == 2
    assert summary["participantCount"] == 1
    assert summary["round"] == 2


@pytest.mark.asyncio
async def test_update_validates_fields(client: AsyncClient):
    enc_id = await _create(client, "rm")
    resp = await client.patch(f"/api/encounters/{enc_id}", json={"status": "paused"}, headers=auth_headers("rm"))
    assert resp.status_code == 422
    resp = await client.patch(f"/api/encounters/{enc_id}", json={"round": -1}, headers=auth_headers("rm"))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_encounters_are_owner_scoped(client: AsyncClient):
    enc_id = await _create(client, "rm")
    assert (await client.get("/api/encounters", headers=auth_headers("other"))).json() == []
    resp = await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("other"))
    assert resp.status_code == 404
    resp = await client.patch(f"/api/encounters/{enc_id}", json={"round": 1}, headers=auth_headers("other"))
    assert resp.status_code == 404
    resp = await client.delete(f"/api/encounters/{enc_id}", headers=auth_headers("other"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_encounter(client: AsyncClient):
    enc_id = await _create(client, "rm")
    resp = await client.delete(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))
    assert resp.json() == {"ok": True}
    resp = await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_rolled_skill_participants_are_scored(client: AsyncClient):
    enc_id = await _create(client, "rm", type="skill")
    skill = {
        "difficultyScore": 12,
        "participants": [
            {"id": "p", "hasRolled": True, "rollValue": 17},
            {"id": "q", "hasRolled": True, "rollValue": 6, "successCount": 0, "failureCount": 9},
            {"id": "r", "hasRolled": False},
        ],
    }
    resp = await client.patch(f"/api/encounters/{enc_id}", json={"skillEncounter": skill},
                              headers=auth_headers("rm"))
    assert resp.status_code == 204

    data = (await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))).json()
    p, q, r = data["skillEncounter"]["participants"]
    assert (p["successCount"], p["failureCount"]) == (2, 0)
    assert q["failureCount"] == 9
    assert "successCount" not in r


def test_skill_scoring_defaults_difficulty():
    doc = {"skillEncounter": {"participants": [{"hasRolled": True, "rollValue": 9}]}}
    enc_mod.score_skill_participants(doc)
    assert doc["skillEncounter"]["participants"][0]["failureCount"] == 1


@pytest.mark.asyncio
async def test_add_creature_combatants(client: AsyncClient, db_session):
    db_session.add(CoreRules(id="COMBAT", data={"baseEvasion": 12}))
    await db_session.commit()
    resp = await client.post(
        "/api/user/library/creatures",
        json={"name": "Wolf", "level": 1, "abilities": {"vitality": 2, "agility": 3, "acuity": 1}},
        headers=auth_headers("rm"),
    )
    creature_id = resp.json()["id"]
    enc_id = await _create(client, "rm")

    resp = await client.post(f"/api/encounters/{enc_id}/combatants",
                             json={"creatureId": creature_id, "quantity": 2}, headers=auth_headers("rm"))
    assert resp.status_code == 200
    wolf_a, wolf_b = resp.json()
    assert (wolf_a["name"], wolf_b["name"]) == ("Wolf A", "Wolf B")
    assert wolf_a["maxHealth"] == wolf_a["currentHealth"] == 15
    assert wolf_a["maxEnergy"] == 13
    assert wolf_a["evasion"] == 15
    assert 2 <= wolf_a["initiative"] <= 21
    assert wolf_a["isAlly"] is False
    assert wolf_a["sourceId"] == creature_id

    data = (await client.get(f"/api/encounters/{enc_id}", headers=auth_headers("rm"))).json()
    assert [c["name"] for c in data["combatants"]] == ["Wolf A", "Wolf B"]

    resp = await client.post(f"/api/encounters/{enc_id}/combatants",
                             json={"creatureId": "missing"}, headers=auth_headers("rm"))
    assert resp.status_code == 404
    resp = await client.post(f"/api/encounters/{enc_id}/combatants",
                             json={"creatureId": creature_id}, headers=auth_headers("other"))
    assert resp.status_code == 404


def test_creature_combatants_single_copy_keeps_name():
    [ally] = enc_mod.creature_combatants("c1", {"name": "Hawk"}, combatant_type="ally", rng=random.Random(3))
    assert ally["name"] == "Hawk"
    assert ally["isAlly"] is True
    assert ally["evasion"] == 10
