"""Runtime configuration, read from REALMS_* environment variables or .env."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REALMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./realms.db",
        description="Async SQLAlchemy URL",
    )
    jwt_secret: SecretStr = Field(
        default=SecretStr("dev-secret-change-me"),
        description="Shared secret of the auth provider's HS256 tokens",
    )
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    admin_uids: Annotated[list[str], NoDecode] = Field(default_factory=list)
    log_level: str = "INFO"
    log_json: bool = False
    debug: bool = False
    legacy_export_path: Path | None = Field(
        default=None,
        description="JSON export of the legacy document store",
    )

    @field_validator("admin_uids", mode="before")
    @classmethod
    def _split_admin_uids(cls, value: object) -> object:
        if isinstance(value, str):
            return [uid.strip() for uid in value.split(",") if uid.strip()]
        return value

    @property
    def database_url_sync(self) -> str:
        """Same database, sync driver (Alembic)."""
        url = self.database_url
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite", 1)
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()
