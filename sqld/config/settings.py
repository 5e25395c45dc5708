# sqld/config/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------
# Settings (env-driven config)
# ---------------------------
class Settings(BaseSettings):
    VERSION: str = "0.2.0"

    raw: bool = False  # allow raw sql queries at the root path
    dsn: str = ""  # full database url; wins over the parts below
    user: str = "root"
    password: str = ""
    host: str = ""
    dbtype: str = "mysql"  # mysql | postgres | sqlite3
    db: str = ""
    port: int = 8080
    nolog: bool = False
    url: str = "/"  # root path the tables are served under

    model_config = SettingsConfigDict(
        env_prefix="SQLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
