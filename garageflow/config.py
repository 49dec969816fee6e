"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class RetryConfig(BaseSettings):
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds; doubled per attempt (1s, 2s, 4s)


class AutoSaveConfig(BaseSettings):
    interval: float = 30.0


class PollingConfig(BaseSettings):
    interval: float = 15.0


class ApiClientConfig(BaseSettings):
    base_url: str = "http://localhost:8000"
    timeout: float = 10.0
    risk_check_url: str | None = None


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/garageflow.db"
    log_level: str = "INFO"
    api: ApiClientConfig = Field(default_factory=ApiClientConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    autosave: AutoSaveConfig = Field(default_factory=AutoSaveConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    api = ApiClientConfig(**y.get("api", {}))
    retry = RetryConfig(**y.get("retry", {}))
    autosave = AutoSaveConfig(**y.get("autosave", {}))
    polling = PollingConfig(**y.get("polling", {}))
    overrides = {}
    if "url" in y.get("database", {}):
        overrides["database_url"] = y["database"]["url"]
    if "log_level" in y:
        overrides["log_level"] = y["log_level"]
    return Settings(
        api=api,
        retry=retry,
        autosave=autosave,
        polling=polling,
        **overrides,
    )
