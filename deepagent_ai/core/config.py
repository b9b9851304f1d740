"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
All values are loaded from environment variables and an optional .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class SummarizationSettings(BaseModel):
    """Conversation summarization configuration."""

    enabled: bool = Field(
        default=False,
        alias="DEEPAGENT_SUMMARIZATION_ENABLED",
        description="Summarize older history once the token threshold is exceeded",
    )
    token_threshold: int = Field(
        default=170_000,
        alias="DEEPAGENT_SUMMARIZATION_TOKEN_THRESHOLD",
        description="Estimated history token count that triggers summarization",
    )
    keep_messages: int = Field(
        default=6,
        alias="DEEPAGENT_SUMMARIZATION_KEEP_MESSAGES",
        description="Number of most recent messages kept verbatim",
    )

    model_config = {"populate_by_name": True}


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        alias="DEEPAGENT_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    format: str = Field(
        default="detailed",
        alias="DEEPAGENT_LOG_FORMAT",
        description="Log record format (simple, detailed, json)",
    )
    enable_file_logging: bool = Field(
        default=False,
        alias="DEEPAGENT_ENABLE_FILE_LOGGING",
        description="Also write log records to a file",
    )
    file_dir: str = Field(
        default="logs",
        alias="DEEPAGENT_LOG_FILE_DIR",
        description="Directory for the log file when file logging is enabled",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Deep agent settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="DEEPAGENT_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log record format (simple, detailed, json)",
        alias="DEEPAGENT_LOG_FORMAT",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write log records to a file",
        alias="DEEPAGENT_ENABLE_FILE_LOGGING",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="DEEPAGENT_LOG_FILE_DIR",
    )

    # =====================================================================
    # Orchestration
    # =====================================================================
    model: Optional[str] = Field(
        default=None,
        description="Model identifier for the pydantic-ai adapter (e.g. openai:gpt-4o)",
        alias="DEEPAGENT_MODEL",
    )
    max_steps: int = Field(
        default=100,
        description="Maximum number of model steps per run",
        alias="DEEPAGENT_MAX_STEPS",
    )
    tool_result_eviction_limit: Optional[int] = Field(
        default=None,
        description="Token limit above which tool results are evicted to storage (unset disables eviction)",
        alias="DEEPAGENT_TOOL_RESULT_EVICTION_LIMIT",
    )
    evict_large_tool_results: bool = Field(
        default=False,
        description="Evict oversized tool results using the default 20000-token limit when no explicit limit is set",
        alias="DEEPAGENT_EVICT_LARGE_TOOL_RESULTS",
    )
    summarization_enabled: bool = Field(
        default=False,
        description="Summarize older history once the token threshold is exceeded",
        alias="DEEPAGENT_SUMMARIZATION_ENABLED",
    )
    summarization_token_threshold: int = Field(
        default=170_000,
        description="Estimated history token count that triggers summarization",
        alias="DEEPAGENT_SUMMARIZATION_TOKEN_THRESHOLD",
    )
    summarization_keep_messages: int = Field(
        default=6,
        description="Number of most recent messages kept verbatim",
        alias="DEEPAGENT_SUMMARIZATION_KEEP_MESSAGES",
    )

    # =====================================================================
    # Persistence
    # =====================================================================
    checkpoint_db_url: Optional[str] = Field(
        default=None,
        description="Async database URL for the SQL checkpoint repository",
        alias="DEEPAGENT_CHECKPOINT_DB_URL",
    )
    filesystem_root: Optional[str] = Field(
        default=None,
        description="Root directory for the on-disk backend",
        alias="DEEPAGENT_FILESYSTEM_ROOT",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def summarization(self) -> SummarizationSettings:
        """Get summarization configuration from environment variables."""
        return SummarizationSettings.model_validate(self.model_dump(by_alias=True))

    @property
    def logging(self) -> LoggingSettings:
        """Get logging configuration from environment variables."""
        return LoggingSettings.model_validate(self.model_dump(by_alias=True))


settings = Settings()
