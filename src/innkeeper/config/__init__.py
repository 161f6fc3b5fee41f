"""
Configuration Module
====================

Settings come from environment variables (or a `.env` file) through
pydantic-settings; field names map case-insensitively, so `NODE_IP`
sets `node_ip`. The enums below are the fixed vocabularies shared by
the domain and the persistence layer.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "staging", "production")


class Settings(BaseSettings):
    """Process-wide settings, validated once at import."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========== Application ==========
    app_name: str = "innkeeper"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", description="One of development, staging, production")
    debug: bool = Field(default=False, description="Echo SQL and return error details")
    log_level: str = "INFO"

    # ========== Server ==========
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/innkeeper",
        description="SQLAlchemy URL with an async driver (asyncpg or aiosqlite)"
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)

    # ========== Cluster ==========
    node_ip: Optional[str] = Field(
        default=None,
        description="Address peers poll this node on; registered in the node table at startup"
    )
    node_id: int = Field(default=0, ge=0, description="Logical index of this node in the cluster")
    coordinator: bool = Field(
        default=False,
        description="Coordinator flag when no cluster config file exists"
    )
    cluster_config_path: Path = Field(
        default=Path("cluster.yaml"),
        description="YAML file holding `coordinator: true|false`, watched for changes"
    )
    peer_port: int = Field(default=8080, ge=1, le=65535, description="Port for peers stored as bare addresses")
    peer_timeout_seconds: float = Field(default=2.0, gt=0, le=30, description="Budget for one coordinator poll")

    # ========== Failure Alerting ==========
    sla_evaluation_interval: int = Field(
        default=60,
        ge=0,
        description="Seconds between failure evaluations; 0 turns the scheduler off"
    )
    slack_webhook_url: Optional[str] = Field(default=None, description="Incoming webhook; unset disables Slack")
    slack_channel: str = "#innkeeper-alerts"
    slack_timeout_seconds: float = Field(default=5.0, ge=0.1, le=30)

    # ========== CORS ==========
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("environment")
    @classmethod
    def check_environment(cls, value: str) -> str:
        if value not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {', '.join(ENVIRONMENTS)}")
        return value


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


# ========== Vocabularies ==========

class TimeUnit(str, Enum):
    """Unit for reservation frequency and snooze duration."""
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"


class HousekeepingAction(str, Enum):
    """Kinds of entry in the append-only housekeeping log."""
    RESERVATION = "reservation"
    CHECKIN = "checkin"
    SNOOZE = "snooze"
    CHECKOUT = "checkout"


UNIT_SECONDS: Dict[str, int] = {
    TimeUnit.SECONDS.value: 1,
    TimeUnit.MINUTES.value: 60,
    TimeUnit.HOURS.value: 3600,
}

VALID_TIME_UNITS = [unit.value for unit in TimeUnit]
