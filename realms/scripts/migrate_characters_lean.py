"""Rewrite every stored character into the lean shape.

Usage: realms-migrate-lean [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from realms.domain.lean import migrate_all_characters
from realms.infra.config import settings
from realms.infra.db import SessionLocal
from realms.infra.logging import configure_logging


async def run(dry_run: bool) -> int:
    async with SessionLocal() as db:
        summary = await migrate_all_characters(db, dry_run=dry_run)
        if dry_run:
            await db.rollback()
        else:
            await db.commit()

    print(f"Total:    {summary.total}")
    print(f"Migrated: {summary.migrated}")
    print(f"Skipped:  {summary.skipped} (already lean)")
    print(f"Errors:   {len(summary.errors)}")
    for err in summary.errors:
        print(f"  {err['id']}: {err['error']}")
    return 1 if summary.errors else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate characters to the lean storage format")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    args = parser.parse_args()

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    sys.exit(asyncio.run(run(args.dry_run)))


if __name__ == "__main__":
    main()
