"""
Configuration loader for the table queue.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///./table_queue.db"   # postgresql:// | mysql:// | sqlite://
    lock_timeout: float = 30.0                 # seconds a claimant waits on the SQLite write lock
    pool_size: int = 10
    max_overflow: int = 20


@dataclass
class QueueConfig:
    polling_interval_ms: int = 1000     # sleep between empty claim attempts
    default_queue: str = "default"


@dataclass
class Settings:
    app_name: str = "TableQueue"
    debug: bool = False
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "TABLE_QUEUE_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "database" in raw:
            db = raw["database"]
            defaults = DatabaseConfig()
            settings.database = DatabaseConfig(
                url=db.get("url", defaults.url),
                lock_timeout=float(db.get("lock_timeout", defaults.lock_timeout)),
                pool_size=int(db.get("pool_size", defaults.pool_size)),
                max_overflow=int(db.get("max_overflow", defaults.max_overflow)),
            )

        if "queue" in raw:
            q = raw["queue"]
            settings.queue = QueueConfig(
                polling_interval_ms=int(q.get("polling_interval_ms", 1000)),
                default_queue=q.get("default_queue", "default"),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
