from __future__ import annotations

import logging
import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .constants import (
    DEFAULT_CLEANUP_MAX_AGE_DAYS,
    DEFAULT_HISTORY_DIR,
    DEFAULT_STATE_DIR,
)


class RedisConfig(BaseModel):
    """Configuration for the Redis store."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class StoreConfig(BaseModel):
    """Durable store settings."""

    url: Optional[str] = None
    redis: RedisConfig = RedisConfig()


class SkillflowConfig(BaseModel):
    """Top-level configuration model."""

    store: StoreConfig = StoreConfig()
    state_dir: str = DEFAULT_STATE_DIR
    history_dir: str = DEFAULT_HISTORY_DIR
    workflows_dir: Optional[str] = None
    cleanup_max_age_days: float = DEFAULT_CLEANUP_MAX_AGE_DAYS
    retry_backoff: Optional[float] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> SkillflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SKILLFLOW_CONFIG env
            variable or 'skillflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("SKILLFLOW_CONFIG", "skillflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SkillflowConfig(**data)
    else:
        config = SkillflowConfig()

    env_store_url = os.getenv("SKILLFLOW_STORE_URL")
    if env_store_url:
        config.store.url = env_store_url
    return config


def configure_logging(level: str = "INFO") -> None:
    """Install a basic stream handler for CLI use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
