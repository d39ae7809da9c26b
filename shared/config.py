"""
Shared configuration management for the Eligibility Atom engine.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ELIGIBILITY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Log level name")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")


class EngineConfig(BaseConfig):
    """Execution engine configuration."""

    service_name: str = "eligibility"

    # Result cache
    cache_backend: str = Field(default="memory", description="Cache store backend: memory or redis")
    cache_enabled: bool = Field(default=True, description="Global switch for result caching")
    cache_ttl_seconds: int = Field(default=1800, ge=60, le=86400, description="Default result TTL")

    # Execution
    execution_timeout_ms: int = Field(default=30000, ge=1, description="Default evaluation timeout")
    worker_pool_size: int = Field(default=4, ge=1, description="Evaluation workers")
    queue_capacity: int = Field(default=1000, ge=1, description="Evaluation backlog before caller-runs")
    statistics_queue_capacity: int = Field(default=1000, ge=1, description="Pending statistics updates")

    # Validation limits
    validation_enabled: bool = Field(default=True, description="Validate input before execution")
    max_dependencies: int = Field(default=10, ge=1, description="Dependencies allowed per atom")
    max_conditions: int = Field(default=20, ge=1, description="Conditions allowed per complex atom")
    max_composition_depth: int = Field(default=10, ge=1, le=50, description="Dependency graph depth bound")
    validation_cycle_depth: int = Field(default=5, ge=1, description="Depth bound of the validation cycle pre-check")

    metrics_port: Optional[int] = Field(default=None, description="Expose Prometheus metrics on this port")


def get_config(**overrides) -> EngineConfig:
    """Get engine configuration, applying explicit overrides on top of the environment."""
    return EngineConfig(**overrides)
