from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .contracts import RUN_TOPIC


class RedisConfig(BaseModel):
    """Configuration for Redis transport."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = Field(default_factory=RedisConfig)


class WorkerConfig(BaseModel):
    """Background worker settings."""

    topic: str = RUN_TOPIC
    # Gives the caller's write time to become visible before the worker reads it.
    dispatch_delay: float = Field(default=0.5, ge=0)
    max_concurrency: int = Field(default=8, ge=1)


class GenerationConfig(BaseModel):
    """Models backing the text-generation adapter."""

    light_model: str = "anthropic:claude-sonnet-4-0"
    deep_model: str = "anthropic:claude-opus-4-0"


class CaseflowConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = Field(default_factory=TransportConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    database_url: Optional[str] = None


def load_config(path: Optional[str] = None) -> CaseflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to CASEFLOW_CONFIG env
            variable or 'caseflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("CASEFLOW_CONFIG", "caseflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = CaseflowConfig(**data)
    else:
        config = CaseflowConfig()

    env_db_url = os.getenv("CASEFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_transport = os.getenv("CASEFLOW_TRANSPORT")
    if env_transport:
        # Rebuilt rather than assigned so an unknown backend fails here.
        config.transport = TransportConfig(
            backend=env_transport.lower(), redis=config.transport.redis
        )
    return config
