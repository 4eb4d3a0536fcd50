"""CRM core configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class CRMCoreSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///crmcore.db"
    echo_sql: bool = False
    log_level: str = "INFO"

    # Re-plans of a mutation's lock set before it is widened to a superset
    lock_retry_limit: int = 3
    audit_page_size: int = 100

    model_config = {"env_prefix": "CRMCORE_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = CRMCoreSettings()
