"""Configuration management for dynamic-schema.

Settings come from three layers, lowest priority first:
  1. Field defaults below
  2. ~/.dynamic-schema/config.json (written by ConfigManager)
  3. DYNAMIC_SCHEMA_* environment variables
"""

import json
import os
import sys
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

CONFIG_DIR_ENV = "DYNAMIC_SCHEMA_CONFIG_DIR"
CONFIG_FILE_NAME = "config.json"


class SchemaEngineConfig(BaseSettings):
    """Tunable behaviour of the schema engine."""

    fuzzy_match_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Similarity at or above which an unmatched field pair becomes a fuzzy mapping",
    )
    fuzzy_review_threshold: float = Field(
        default=0.55,
        ge=0.0,
        le=1.0,
        description="Similarity at or above which a pair is held for manual review",
    )
    formula_max_length: int = Field(
        default=1000, gt=0, description="Maximum formula length in characters"
    )
    formula_max_depth: int = Field(
        default=50, gt=0, description="Maximum nesting depth of a parsed formula"
    )
    strict_integrity: bool = Field(
        default=True,
        description="Reject schemas with integrity errors at load time instead of only warning",
    )
    log_level: LogLevel = Field(default="INFO", description="Log level for the CLI sink")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    model_config = SettingsConfigDict(
        env_prefix="DYNAMIC_SCHEMA_",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_thresholds(self) -> "SchemaEngineConfig":
        if self.fuzzy_review_threshold > self.fuzzy_match_threshold:
            raise ValueError("fuzzy_review_threshold must not exceed fuzzy_match_threshold")
        return self


class ConfigManager:
    """Reads and writes the JSON config file, letting the environment win."""

    def __init__(self, config_dir: Path | None = None) -> None:
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV)
            config_dir = Path(env_dir) if env_dir else Path.home() / ".dynamic-schema"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / CONFIG_FILE_NAME

    def load_config(self) -> SchemaEngineConfig:
        """Load config from file, with DYNAMIC_SCHEMA_* env vars taking precedence."""
        file_values: dict = {}
        if self.config_file.exists():
            try:
                file_values = json.loads(self.config_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
                file_values = {}

        # Environment overrides: drop file keys that have an env var set
        overrides = {
            key: value
            for key, value in file_values.items()
            if f"DYNAMIC_SCHEMA_{key.upper()}" not in os.environ
        }
        return SchemaEngineConfig(**overrides)

    def save_config(self, config: SchemaEngineConfig) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(config.model_dump_json(indent=2), encoding="utf-8")


def init_logging(config: SchemaEngineConfig) -> None:
    """Configure loguru sinks for command line use.

    The library itself never adds sinks; only entry points call this.
    """
    logger.remove()
    logger.add(sys.stderr, level=config.log_level, colorize=True)
    if config.log_file:
        logger.add(
            config.log_file,
            level=config.log_level,
            rotation="10 MB",
            retention="7 days",
            backtrace=True,
            diagnose=False,
        )
