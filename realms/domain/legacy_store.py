"""Read-only access to the export of the legacy document store.

The export is one JSON file mirroring the document tree::

    {"users": {"<uid>": {"character": {"<id>": {...}},
                         "library": {"powers": {"<id>": {...}}, ...}}}}

Documents are served after lean migration so callers only ever see the
current character shape.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain.lean import migrate_character_data
from realms.infra.config import settings
from realms.infra.logging import get_logger
from realms.models.db_models import Character, UserProfile

logger = get_logger(__name__)


class LegacyStore:
    def __init__(self, tree: dict[str, Any]):
        self._users: dict[str, Any] = tree.get("users") or {}

    @classmethod
    def from_file(cls, path: Path) -> LegacyStore:
        with open(path, encoding="utf-8") as f:
            tree = json.load(f)
        store = cls(tree)
        logger.info("legacy_store_loaded", path=str(path), users=len(store._users))
        return store

    def _characters(self, uid: str) -> dict[str, Any]:
        return (self._users.get(uid) or {}).get("character") or {}

    def user_ids(self) -> list[str]:
        return list(self._users)

    def get_character(self, uid: str, character_id: str) -> dict[str, Any] | None:
        """``users/{uid}/character/{character_id}``, lean-migrated."""
        doc = self._characters(uid).get(character_id)
        if not isinstance(doc, dict):
            return None
        lean, _ = migrate_character_data(doc)
        return lean

    def find_character(self, character_id: str) -> tuple[str, dict[str, Any]] | None:
        """Locate a character by id alone; returns ``(owner_uid, document)``."""
        for uid in self._users:
            doc = self.get_character(uid, character_id)
            if doc is not None:
                return uid, doc
        return None

    def list_characters(self, uid: str) -> list[tuple[str, dict[str, Any]]]:
        return [
            (character_id, self.get_character(uid, character_id))
            for character_id, doc in self._characters(uid).items()
            if isinstance(doc, dict)
        ]

    def get_library(self, uid: str, library_type: str) -> dict[str, Any]:
        """``users/{uid}/library/{library_type}`` as ``{id: document}``."""
        library = (self._users.get(uid) or {}).get("library") or {}
        return dict(library.get(library_type) or {})


@lru_cache(maxsize=4)
def load_legacy_store(path: Path) -> LegacyStore:
    return LegacyStore.from_file(path)


def get_legacy_store() -> LegacyStore | None:
    """The configured export, or None when legacy reads are disabled."""
    path = settings.legacy_export_path
    if path is None or not Path(path).exists():
        return None
    return load_legacy_store(Path(path))


@dataclass
class ImportSummary:
    total: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


async def import_legacy_characters(
    db: AsyncSession, store: LegacyStore, dry_run: bool = False,
) -> ImportSummary:
    """Copy legacy characters into the relational store, keeping their ids.

    Characters whose id already exists are skipped; owners get a bare
    profile row when they have none yet.
    """
    summary = ImportSummary()
    for uid in store.user_ids():
        for character_id, doc in store.list_characters(uid):
            summary.total += 1
            try:
                if await db.get(Character, character_id) is not None:
                    summary.skipped += 1
                    continue
                if not dry_run:
                    async with db.begin_nested():
                        if await db.get(UserProfile, uid) is None:
                            db.add(UserProfile(id=uid))
                            await db.flush()
                        db.add(Character(id=character_id, user_id=uid, data=doc))
                summary.imported += 1
                logger.info("legacy_character_imported", uid=uid, character_id=character_id,
                            dry_run=dry_run)
            except Exception as exc:
                logger.error("legacy_import_failed", uid=uid, character_id=character_id, error=str(exc))
                summary.errors.append({"id": character_id, "error": str(exc)})
    return summary
