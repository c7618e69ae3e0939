from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    data_dir: Path = Path("data")
    # Stable key the whole broker collection is stored under.
    storage_key: str = "lead-performance-brokers"
    log_level: str = "INFO"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8501",
    ]

    @property
    def storage_path(self) -> Path:
        return self.data_dir / f"{self.storage_key}.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
