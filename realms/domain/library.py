"""User libraries (powers, techniques, items, creatures) and the public library."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts
from realms.domain.legacy_store import get_legacy_store
from realms.infra.logging import get_logger
from realms.models.db_models import (
    PublicCreature,
    PublicItem,
    PublicPower,
    PublicTechnique,
    UserCreature,
    UserItem,
    UserPower,
    UserTechnique,
)

logger = get_logger(__name__)

LIBRARY_TYPES = ("powers", "techniques", "items", "creatures")

USER_MODELS = {
    "powers": UserPower,
    "techniques": UserTechnique,
    "items": UserItem,
    "creatures": UserCreature,
}
PUBLIC_MODELS = {
    "powers": PublicPower,
    "techniques": PublicTechnique,
    "items": PublicItem,
    "creatures": PublicCreature,
}
# RoleLimits attribute and the word used in limit messages
LIMIT_FIELDS = {
    "powers": ("max_powers", "powers"),
    "techniques": ("max_techniques", "techniques"),
    "items": ("max_armaments", "armaments"),
    "creatures": ("max_creatures", "creatures"),
}


def validate_type(library_type: str) -> str:
    if library_type not in LIBRARY_TYPES:
        raise ValueError("Invalid library type")
    return library_type


def flatten(row) -> dict[str, Any]:
    return {"id": row.id, "docId": row.id, **(row.data or {})}


def _by_name(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(items, key=lambda item: str(item.get("name") or "").lower())


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- User library ---


async def list_items(db: AsyncSession, user_id: str, library_type: str) -> list[dict[str, Any]]:
    """The user's entries sorted by name, legacy-only ones included read-only."""
    model = USER_MODELS[validate_type(library_type)]
    result = await db.execute(select(model).where(model.user_id == user_id))
    rows = result.scalars().all()
    items = [flatten(row) for row in rows]

    store = get_legacy_store()
    if store is not None:
        known = {row.id for row in rows}
        for item_id, doc in store.get_library(user_id, library_type).items():
            if item_id not in known and isinstance(doc, dict):
                items.append({"id": item_id, "docId": item_id, **doc, "_source": "legacy"})
    return _by_name(items)


async def get_item(db: AsyncSession, user_id: str, library_type: str, item_id: str):
    model = USER_MODELS[validate_type(library_type)]
    row = await db.get(model, item_id)
    if row is None or row.user_id != user_id:
        return None
    return row


async def create_item(
    db: AsyncSession,
    user_id: str,
    library_type: str,
    data: dict[str, Any],
    duplicate_of: str | None = None,
):
    """Create a library entry (or a copy of ``duplicate_of``); None when the source is missing."""
    model = USER_MODELS[validate_type(library_type)]
    await accounts.ensure_profile(db, user_id)
    limits = await accounts.get_limits(db, user_id)
    limit_attr, label = LIMIT_FIELDS[library_type]
    await accounts.check_limit(db, user_id, model, getattr(limits, limit_attr), label)

    now = _now_iso()
    if duplicate_of:
        source = await get_item(db, user_id, library_type, duplicate_of)
        if source is None:
            return None
        base = {k: v for k, v in (source.data or {}).items() if k not in ("createdAt", "updatedAt")}
        doc = {**base, "name": f"{base.get('name') or 'Item'} (Copy)"}
    else:
        doc = {k: v for k, v in data.items() if k not in ("id", "docId")}
    doc["createdAt"] = now
    doc["updatedAt"] = now

    row = model(user_id=user_id, data=doc)
    db.add(row)
    await db.flush()
    logger.info("library_item_created", uid=user_id, type=library_type, item_id=row.id)
    return row


async def update_item(
    db: AsyncSession, user_id: str, library_type: str, item_id: str, data: dict[str, Any],
):
    row = await get_item(db, user_id, library_type, item_id)
    if row is None:
        return None
    changes = {k: v for k, v in data.items() if k not in ("id", "docId", "createdAt")}
    row.data = {**(row.data or {}), **changes, "updatedAt": _now_iso()}
    await db.flush()
    return row


async def delete_item(db: AsyncSession, user_id: str, library_type: str, item_id: str) -> bool:
    row = await get_item(db, user_id, library_type, item_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    return True


# --- Public library ---


async def list_public(db: AsyncSession, library_type: str) -> list[dict[str, Any]]:
    model = PUBLIC_MODELS[validate_type(library_type)]
    result = await db.execute(select(model))
    return _by_name([{**flatten(row), "_source": "public"} for row in result.scalars().all()])


async def save_public(db: AsyncSession, library_type: str, body: dict[str, Any]) -> str:
    """Create a public entry, or replace the one named by ``body["id"]``."""
    model = PUBLIC_MODELS[validate_type(library_type)]
    existing_id = body.get("id")
    now = _now_iso()
    data = {k: v for k, v in body.items() if k not in ("id", "docId")}
    data["updatedAt"] = now

    row = await db.get(model, existing_id) if existing_id else None
    if row is not None:
        row.data = data
    else:
        data["createdAt"] = now
        row = model(data=data) if not existing_id else model(id=existing_id, data=data)
        db.add(row)
    await db.flush()
    logger.info("public_item_saved", type=library_type, item_id=row.id)
    return row.id


async def delete_public(db: AsyncSession, library_type: str, item_id: str) -> bool:
    model = PUBLIC_MODELS[validate_type(library_type)]
    row = await db.get(model, item_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    return True
