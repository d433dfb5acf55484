"""Replace the codex tables with the contents of a directory of CSV exports.

Usage: realms-seed-codex DIR [--core-rules rules.json]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from realms.domain.codex_seed import seed_codex, seed_core_rules
from realms.infra.config import settings
from realms.infra.db import SessionLocal, init_db
from realms.infra.logging import configure_logging


async def run(directory: Path, core_rules: Path | None) -> int:
    await init_db()
    async with SessionLocal() as db:
        summary = await seed_codex(db, directory)
        categories = await seed_core_rules(db, core_rules) if core_rules else 0
        await db.commit()

    for table, count in sorted(summary.counts.items()):
        print(f"{table}: {count} rows")
    for name in summary.skipped_files:
        print(f"Skipped {name} (no table mapping)")
    if core_rules:
        print(f"core_rules: {categories} categories")
    for err in summary.errors:
        print(f"  {err}")
    return 1 if summary.errors else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the codex from CSV files")
    parser.add_argument("directory", type=Path, help="Directory holding the codex CSV files")
    parser.add_argument("--core-rules", type=Path, default=None,
                        help="JSON file of core rule categories to upsert")
    args = parser.parse_args()

    if not args.directory.is_dir():
        parser.error(f"{args.directory} is not a directory")

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    sys.exit(asyncio.run(run(args.directory, args.core_rules)))


if __name__ == "__main__":
    main()
