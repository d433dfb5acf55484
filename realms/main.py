"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from realms.api import account, admin, campaigns, characters, codex, encounters, library, public
from realms.infra.config import settings
from realms.infra.db import init_db
from realms.infra.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    await init_db()
    logger.info("realms_started", debug=settings.debug,
                legacy_reads=settings.legacy_export_path is not None)
    yield


app = FastAPI(
    title="Realms",
    description="Character sheets, codex, libraries, encounters and campaigns for Realms RPG",
    version="0.4.0",
    lifespan=lifespan,
)

app.include_router(characters.router)
app.include_router(codex.router)
app.include_router(library.router)
app.include_router(public.router)
app.include_router(encounters.router)
app.include_router(campaigns.router)
app.include_router(account.router)
app.include_router(admin.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "engine": "realms"}
