from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DB_FILE = PROJECT_ROOT / "ledger.db"


class AppSettings(BaseSettings):
    database_url: str = f"sqlite:///{DB_FILE}"
    jwt_secret: str
    token_ttl_seconds: int = 3600
    password_hash_rounds: int = 12
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    log_level: str = "INFO"
    db_echo: bool = False

    model_config = SettingsConfigDict(env_prefix="LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()  # type: ignore[call-arg]
