"""Load codex spreadsheets (CSV exports) into the codex tables.

Seeding replaces the tables wholesale so the database matches the CSVs.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain.codex import upsert_core_rules
from realms.infra.logging import get_logger
from realms.models.db_models import CODEX_TABLES

logger = get_logger(__name__)

# Only these columns are comma-separated lists; other cells keep their commas.
ARRAY_COLUMNS = frozenset({
    "tags",
    "sizes",
    "skills",
    "species_traits",
    "ancestry_traits",
    "flaws",
    "characteristics",
    "languages",
    "adulthood_lifespan",
    "type",
    "mechanic",
    "base_skill",
})

FILE_TO_TABLE = {
    "feats": "codex_feats",
    "parts": "codex_parts",
    "properties": "codex_properties",
    "species": "codex_species",
    "traits": "codex_traits",
    "skills": "codex_skills",
    "archetypes": "codex_archetypes",
    "creature_feats": "codex_creature_feats",
    "equipment": "codex_equipment",
    "items": "codex_equipment",
    "creature_feat": "codex_creature_feats",
}

_INT = re.compile(r"^-?\d+$")
_FLOAT = re.compile(r"^-?\d*\.\d+$")


def parse_csv_line(line: str) -> list[str]:
    """Split one line on commas outside double quotes; quotes are dropped."""
    values, current, in_quotes = [], [], False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(ch)
    values.append("".join(current))
    return values


def parse_csv(content: str) -> list[dict[str, str]]:
    lines = [line for line in re.split(r"\r?\n", content) if line.strip()]
    if not lines:
        return []
    headers = [h.strip() for h in lines[0].split(",")]
    rows = []
    for line in lines[1:]:
        values = parse_csv_line(line)
        rows.append({
            h: values[i].strip() if i < len(values) else ""
            for i, h in enumerate(headers)
        })
    return rows


def to_json_object(row: dict[str, str]) -> dict[str, Any]:
    """Type the cells of one CSV row; empty cells are left out."""
    data: dict[str, Any] = {}
    for key, value in row.items():
        if value == "":
            continue
        lowered = value.lower()
        if lowered == "true":
            data[key] = True
        elif lowered == "false":
            data[key] = False
        elif _INT.match(value):
            data[key] = int(value)
        elif _FLOAT.match(value):
            data[key] = float(value)
        elif key in ARRAY_COLUMNS and "," in value:
            data[key] = [s.strip() for s in value.split(",") if s.strip()]
        else:
            data[key] = value
    return data


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9_-]", "", re.sub(r"\s+", "_", str(value).lower()))


def file_to_table(stem: str) -> str | None:
    """``"Codex - Creature Feats"`` → ``"codex_creature_feats"``."""
    if stem in FILE_TO_TABLE:
        return FILE_TO_TABLE[stem]
    key = re.sub(r"\s+", "_", re.sub(r"^Codex\s*-\s*", "", stem, flags=re.I).lower())
    if key == "creature_feat":
        key = "creature_feats"
    elif key == "items":
        key = "equipment"
    return FILE_TO_TABLE.get(key)


def row_id(data: dict[str, Any], index: int) -> str:
    candidate = data.get("id") or slugify(data.get("name") or data.get("Name") or f"row-{index}")
    return str(candidate).strip() or f"row-{index}"


@dataclass
class SeedSummary:
    counts: dict[str, int] = field(default_factory=dict)
    skipped_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


async def clear_codex_tables(db: AsyncSession) -> None:
    for name, model in CODEX_TABLES.items():
        await db.execute(delete(model))
        logger.info("codex_table_cleared", table=name)


async def seed_table(db: AsyncSession, table: str, rows: list[dict[str, str]], summary: SeedSummary) -> int:
    model = CODEX_TABLES[table]
    count = 0
    for index, raw in enumerate(rows):
        data = to_json_object(raw)
        ident = row_id(data, index)
        try:
            async with db.begin_nested():
                row = await db.get(model, ident)
                if row is None:
                    db.add(model(id=ident, data=data))
                else:
                    row.data = data
            count += 1
        except SQLAlchemyError as exc:
            summary.errors.append(f"{table}/{ident}: {exc}")
            logger.error("codex_row_failed", table=table, row_id=ident, error=str(exc))
    return count


async def seed_codex(db: AsyncSession, directory: Path) -> SeedSummary:
    """Clear the codex and load every mapped ``*.csv`` under ``directory``."""
    summary = SeedSummary()
    files = sorted(Path(directory).glob("*.csv"))
    if not files:
        logger.warning("codex_seed_no_files", directory=str(directory))
        return summary

    await clear_codex_tables(db)
    for path in files:
        table = file_to_table(path.stem)
        if table is None:
            summary.skipped_files.append(path.name)
            logger.info("codex_seed_skip", file=path.name)
            continue
        rows = parse_csv(path.read_text(encoding="utf-8"))
        count = await seed_table(db, table, rows, summary)
        summary.counts[table] = summary.counts.get(table, 0) + count
        logger.info("codex_seed_file", file=path.name, table=table, rows=count)
    await db.flush()
    return summary


async def seed_core_rules(db: AsyncSession, path: Path) -> int:
    """Upsert every category of a ``{category: {...}}`` JSON file."""
    rules = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(rules, dict):
        raise ValueError("Core rules file must hold a JSON object")
    for category, data in rules.items():
        await upsert_core_rules(db, category, data)
    return len(rules)
