"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="inbox-routing", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/inbox",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    auto_create_tables: bool = Field(
        default=False,
        description="Create tables on startup (development only)"
    )

    # ========== SLA Policy ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to the SLA policy YAML file"
    )
    sla_watch_config: bool = Field(
        default=True,
        description="Reload the SLA policy file when it changes"
    )

    # ========== Supervisor Takeover ==========
    supervisor_takeover_enabled: bool = Field(
        default=False,
        description="Allow supervisors to take over and release conversations"
    )

    # ========== Skill Routing ==========
    skill_routing_enabled: bool = Field(
        default=False,
        description="Infer a category from routing rules when a customer message arrives"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str):
    """Conversation priority levels."""
    LOW = "low"
    MED = "med"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str):
    """Conversation ticket lifecycle statuses."""
    OPEN = "open"
    PENDING = "pending"
    SOLVED = "solved"
    SPAM = "spam"


class SLAStatus(str):
    """SLA classification derived from the next response deadline."""
    OK = "ok"
    DUE_SOON = "due_soon"
    BREACHED = "breached"


class BreachType(str):
    """Deadline kinds an escalation can be recorded for."""
    NEXT_RESPONSE = "next_response"
    RESOLUTION = "resolution"


class MemberRole(str):
    """Workspace roles resolved by the auth gateway."""
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    AGENT = "agent"


class EventType(str):
    """Audit event types appended to a conversation."""
    TAKEOVER = "takeover"
    RELEASE_TAKEOVER = "release_takeover"
    THREAD_UPDATED = "thread_updated"
    ROUTED = "routed"


class AssignmentState(str):
    """Ownership states of a conversation."""
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    TAKEN_OVER = "taken_over"


# ========== Defaults ==========

DEFAULT_PRIORITY = Priority.LOW
DEFAULT_TICKET_STATUS = TicketStatus.OPEN


# ========== Lists for validation ==========

VALID_PRIORITIES = [Priority.LOW, Priority.MED, Priority.HIGH, Priority.URGENT]
TERMINAL_TICKET_STATUSES = [TicketStatus.SOLVED, TicketStatus.SPAM]
ACTIVE_TICKET_STATUSES = [TicketStatus.OPEN, TicketStatus.PENDING]
SUPERVISOR_ROLES = [MemberRole.SUPERVISOR, MemberRole.ADMIN]
