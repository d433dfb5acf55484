"""Tests for codex shaping, CSV seeding and the codex endpoints."""

import json

import pytest
from httpx import AsyncClient

from realms.domain import codex
from realms.domain.codex_seed import (
    file_to_table,
    parse_csv,
    parse_csv_line,
    seed_codex,
    seed_core_rules,
    to_json_object,
)
from realms.models.db_models import CodexFeat, CodexPart, CodexSpecies, CoreRules
from tests.conftest import auth_headers


# --- Coercion helpers ---


def test_to_str_array():
    assert codex.to_str_array("a, b,,c ") == ["a", "b", "c"]
    assert codex.to_str_array(["x", 2]) == ["x", "2"]
    assert codex.to_str_array(None) == []
    assert codex.to_str_array(5) == []


def test_to_num_array():
    assert codex.to_num_array("1, 2.5, x") == [1.0, 2.5]
    assert codex.to_num_array([3, "4"]) == [3, 4.0]
    assert codex.to_num_array(7) == [7]


def test_parse_int_reads_leading_digits():
    assert codex.parse_int("12 ft") == 12
    assert codex.parse_int(3.7) == 3
    assert codex.parse_int("abc") is None
    assert codex.parse_int(None) is None


def test_to_bool_only_true_values():
    assert codex.to_bool(True)
    assert codex.to_bool("true")
    assert not codex.to_bool("TRUE")
    assert not codex.to_bool(1)


# --- Shapers ---


def test_shape_feat_coerces_columns():
    feat = codex.shape_feat("f1", {
        "name": "Tough",
        "tags": "defense, health",
        "abil_req_val": "2,3",
        "lvl_req": "4",
        "char_feat": True,
    })
    assert feat["tags"] == ["defense", "health"]
    assert feat["abil_req_val"] == [2.0, 3.0]
    assert feat["lvl_req"] == 4
    assert feat["uses_per_rec"] == 0
    assert feat["char_feat"] is True
    assert feat["state_feat"] is False


def test_shape_species_defaults_and_fallback_keys():
    species = codex.shape_species("s1", {"name": "Elf", "trait_ids": "t1, t2", "speed": "bad"})
    assert species["size"] == "Medium"
    assert species["speed"] == 6
    assert species["traits"] == ["t1", "t2"]

    species = codex.shape_species("s2", {"sizes": "Small, Medium", "speed": "5"})
    assert species["size"] == "Small"
    assert species["sizes"] == ["Small", "Medium"]
    assert species["speed"] == 5


def test_shape_skill():
    skill = codex.shape_skill("k1", {"name": "Climb", "ability": ["strength", "agility"], "base_skill_id": "3"})
    assert skill["ability"] == "strength, agility"
    assert skill["base_skill_id"] == 3
    assert codex.shape_skill("k2", {"base_skill_id": ""})["base_skill_id"] is None


def test_shape_part_type_and_numbers():
    part = codex.shape_part("p1", {"type": "Technique", "base_en": "1.5", "op_1_tp": 2, "mechanic": "true"})
    assert part["type"] == "technique"
    assert part["base_en"] == 1.5
    assert part["op_1_tp"] == 2
    assert part["op_2_en"] == 0
    assert part["mechanic"] is True
    assert codex.shape_part("p2", {})["type"] == "power"


def test_shape_equipment_currency_falls_back_to_gold():
    item = codex.shape_equipment("e1", {"name": "Sword", "gold_cost": "15", "properties": "sharp"})
    assert item["type"] == "equipment"
    assert item["currency"] == 15
    assert item["properties"] == ["sharp"]


def test_shape_creature_feat_points_aliases():
    assert codex.shape_creature_feat("c1", {"feat_points": "2"})["points"] == 2
    assert codex.shape_creature_feat("c2", {"cost": 1.5})["points"] == 1.5
    assert codex.shape_creature_feat("c3", {})["points"] == 0


def test_error_hint():
    assert "connection" in codex.error_hint("could not connect to server").lower()
    assert "alembic" in codex.error_hint('relation "codex_feats" does not exist')
    assert codex.error_hint("something else") is None
    assert codex.error_hint("raw", debug=True) == "raw"


# --- CSV seeding ---


def test_parse_csv_line_respects_quotes():
    assert parse_csv_line('a,"b, c",d') == ["a", "b, c", "d"]


def test_parse_csv_pads_missing_cells():
    rows = parse_csv("id,name,tags\r\nf1,Tough\n\n")
    assert rows == [{"id": "f1", "name": "Tough", "tags": ""}]


def test_to_json_object_types_cells():
    data = to_json_object({
        "id": "f1",
        "lvl_req": "3",
        "weight": "-0.5",
        "char_feat": "TRUE",
        "tags": "a, b",
        "skills": "single",
        "description": "one, two",
        "empty": "",
    })
    assert data == {
        "id": "f1",
        "lvl_req": 3,
        "weight": -0.5,
        "char_feat": True,
        "tags": ["a", "b"],
        "skills": "single",
        "description": "one, two",
    }


@pytest.mark.parametrize("stem, table", [
    ("feats", "codex_feats"),
    ("Codex - Feats", "codex_feats"),
    ("Codex - Items", "codex_equipment"),
    ("Codex - Creature_Feats", "codex_creature_feats"),
    ("Codex - Creature Feat", "codex_creature_feats"),
    ("Codex - Weather", None),
])
def test_file_to_table(stem, table):
    assert file_to_table(stem) == table


@pytest.mark.asyncio
async def test_seed_codex_replaces_tables(db_session, tmp_path):
    db_session.add(CodexFeat(id="stale", data={"name": "Stale"}))
    await db_session.commit()

    (tmp_path / "Codex - Feats.csv").write_text(
        'id,name,tags\nf1,Tough,"defense,health"\n,Quick Step,\n', encoding="utf-8",
    )
    (tmp_path / "species.csv").write_text("name,sizes\nHigh Elf,\"Small,Medium\"\n", encoding="utf-8")
    (tmp_path / "notes.csv").write_text("a\n1\n", encoding="utf-8")

    summary = await seed_codex(db_session, tmp_path)
    await db_session.commit()

    assert summary.counts == {"codex_feats": 2, "codex_species": 1}
    assert summary.skipped_files == ["notes.csv"]
    assert await db_session.get(CodexFeat, "stale") is None
    assert (await db_session.get(CodexFeat, "f1")).data["tags"] == ["defense", "health"]
    assert await db_session.get(CodexFeat, "quick_step") is not None
    species = await db_session.get(CodexSpecies, "high_elf")
    assert species.data["sizes"] == ["Small", "Medium"]


@pytest.mark.asyncio
async def test_seed_core_rules(db_session, tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"COMBAT": {"baseDefense": 10}, "SIZES": {"medium": 1}}))
    assert await seed_core_rules(db_session, path) == 2
    assert (await db_session.get(CoreRules, "COMBAT")).data == {"baseDefense": 10}


# --- HTTP ---


@pytest.mark.asyncio
async def test_codex_endpoint_splits_parts(client: AsyncClient, db_session):
    db_session.add_all([
        CodexPart(id="p1", data={"name": "Blast", "type": "power"}),
        CodexPart(id="p2", data={"name": "Strike", "type": "technique"}),
        CoreRules(id="COMBAT", data={"baseDefense": 10}),
    ])
    await db_session.commit()

    resp = await client.get("/api/codex")
    assert resp.status_code == 200
    data = resp.json()
    assert [p["id"] for p in data["powerParts"]] == ["p1"]
    assert [p["id"] for p in data["techniqueParts"]] == ["p2"]
    assert data["coreRules"] == {"COMBAT": {"baseDefense": 10}}
    assert data["feats"] == []


@pytest.mark.asyncio
async def test_progression_endpoint(client: AsyncClient):
    resp = await client.get("/api/codex/progression", params={"level": 1, "ability": 2})
    assert resp.json()["trainingPoints"] == 24

    resp = await client.get("/api/codex/progression",
                            params={"level": 1, "toLevel": 2, "entityType": "creature"})
    data = resp.json()
    assert data["healthEnergyPool"] == 26
    assert data["difference"]["healthEnergyPool"] == 12


@pytest.mark.asyncio
async def test_admin_codex_editing(client: AsyncClient, admin_uid):
    headers = auth_headers(admin_uid)
    resp = await client.put("/api/admin/codex/codex_feats/f9", json={"name": "Brave"}, headers=headers)
    assert resp.status_code == 200

    feats = (await client.get("/api/codex")).json()["feats"]
    assert [f["name"] for f in feats] == ["Brave"]

    resp = await client.put("/api/admin/codex/not_a_table/x", json={}, headers=headers)
    assert resp.status_code == 400

    resp = await client.delete("/api/admin/codex/codex_feats/f9", headers=headers)
    assert resp.status_code == 200
    resp = await client.delete("/api/admin/codex/codex_feats/f9", headers=headers)
    assert resp.status_code == 404

    resp = await client.put("/api/admin/codex/codex_feats/f9", json={"name": "x"},
                            headers=auth_headers("not-admin"))
    assert resp.status_code == 403
