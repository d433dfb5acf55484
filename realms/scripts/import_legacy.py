"""Copy characters from the legacy document-store export into the database.

Usage: realms-import-legacy [--export PATH] [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from realms.domain.legacy_store import LegacyStore, import_legacy_characters
from realms.infra.config import settings
from realms.infra.db import SessionLocal, init_db
from realms.infra.logging import configure_logging


async def run(export: Path, dry_run: bool) -> int:
    store = LegacyStore.from_file(export)
    await init_db()
    async with SessionLocal() as db:
        summary = await import_legacy_characters(db, store, dry_run=dry_run)
        if dry_run:
            await db.rollback()
        else:
            await db.commit()

    print(f"Total:    {summary.total}")
    print(f"Imported: {summary.imported}")
    print(f"Skipped:  {summary.skipped} (already present)")
    print(f"Errors:   {len(summary.errors)}")
    return 1 if summary.errors else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Import legacy characters")
    parser.add_argument("--export", type=Path, default=settings.legacy_export_path,
                        help="Legacy JSON export (defaults to REALMS_LEGACY_EXPORT_PATH)")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    if args.export is None or not Path(args.export).exists():
        parser.error("a legacy export file is required (--export or REALMS_LEGACY_EXPORT_PATH)")

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    sys.exit(asyncio.run(run(Path(args.export), args.dry_run)))


if __name__ == "__main__":
    main()
