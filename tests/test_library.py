"""Tests for user libraries and the public library."""

import json

import pytest
from httpx import AsyncClient

from realms.infra.config import settings
from tests.conftest import auth_headers


@pytest.mark.asyncio
async def test_library_crud(client: AsyncClient):
    headers = auth_headers("u1")
    for name in ("Zap", "arc Flash"):
        resp = await client.post("/api/user/library/powers", json={"name": name, "parts": []}, headers=headers)
        assert resp.status_code == 200

    resp = await client.get("/api/user/library/powers", headers=headers)
    items = resp.json()
    assert [i["name"] for i in items] == ["arc Flash", "Zap"]
    item_id = items[1]["id"]
    assert items[1]["docId"] == item_id

    resp = await client.patch(f"/api/user/library/powers/{item_id}", json={"description": "shock"},
                              headers=headers)
    assert resp.status_code == 200
    item = (await client.get(f"/api/user/library/powers/{item_id}", headers=headers)).json()
    assert item["description"] == "shock"
    assert item["name"] == "Zap"

    resp = await client.delete(f"/api/user/library/powers/{item_id}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/user/library/powers/{item_id}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_library_is_owner_scoped(client: AsyncClient):
    resp = await client.post("/api/user/library/items", json={"name": "Rope"}, headers=auth_headers("u1"))
    item_id = resp.json()["id"]
    assert (await client.get("/api/user/library/items", headers=auth_headers("u2"))).json() == []
    resp = await client.get(f"/api/user/library/items/{item_id}", headers=auth_headers("u2"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_invalid_library_type(client: AsyncClient):
    resp = await client.get("/api/user/library/spells", headers=auth_headers("u1"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid library type"


@pytest.mark.asyncio
async def test_duplicate_library_item(client: AsyncClient):
    headers = auth_headers("u1")
    resp = await client.post("/api/user/library/techniques", json={"name": "Sweep", "cost": 2}, headers=headers)
    source_id = resp.json()["id"]
    resp = await client.post("/api/user/library/techniques",
                             json={"name": "x", "duplicateOf": source_id}, headers=headers)
    copy = (await client.get(f"/api/user/library/techniques/{resp.json()['id']}", headers=headers)).json()
    assert copy["name"] == "Sweep (Copy)"
    assert copy["cost"] == 2


@pytest.mark.asyncio
async def test_creature_limit(client: AsyncClient):
    headers = auth_headers("u1")
    for i in range(10):
        resp = await client.post("/api/user/library/creatures", json={"name": f"Beast {i}"}, headers=headers)
        assert resp.status_code == 200
    resp = await client.post("/api/user/library/creatures", json={"name": "Beast 11"}, headers=headers)
    assert resp.status_code == 400
    assert "creatures" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_public_library(client: AsyncClient, admin_uid):
    resp = await client.post("/api/public/powers", json={"name": "Fireball"}, headers=auth_headers("u1"))
    assert resp.status_code == 403

    resp = await client.post("/api/public/powers", json={"name": "Fireball"}, headers=auth_headers(admin_uid))
    assert resp.status_code == 200
    item_id = resp.json()["id"]

    resp = await client.post("/api/public/powers", json={"id": item_id, "name": "Greater Fireball"},
                             headers=auth_headers(admin_uid))
    assert resp.json()["id"] == item_id

    resp = await client.get("/api/public/powers")
    [item] = resp.json()
    assert item["name"] == "Greater Fireball"
    assert item["_source"] == "public"

    resp = await client.get("/api/public/spells")
    assert resp.status_code == 400

    resp = await client.delete(f"/api/public/powers/{item_id}", headers=auth_headers(admin_uid))
    assert resp.status_code == 200
    assert (await client.get("/api/public/powers")).json() == []


@pytest.mark.asyncio
async def test_library_lists_legacy_entries(client: AsyncClient, tmp_path, monkeypatch):
    export = tmp_path / "legacy.json"
    export.write_text(json.dumps({"users": {"u1": {"library": {"powers": {
        "old-1": {"name": "Ancient Ward"},
    }}}}}))
    monkeypatch.setattr(settings, "legacy_export_path", export)

    await client.post("/api/user/library/powers", json={"name": "Bolt"}, headers=auth_headers("u1"))
    items = (await client.get("/api/user/library/powers", headers=auth_headers("u1"))).json()
    assert [(i["name"], i.get("_source")) for i in items] == [("Ancient Ward", "legacy"), ("Bolt", None)]
    assert items[0]["docId"] == "old-1"

    assert (await client.get("/api/user/library/powers", headers=auth_headers("u2"))).json() == []
