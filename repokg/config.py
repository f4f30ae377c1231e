"""
Configuration models and environment loading for repokg.
"""
import os
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from repokg.core.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class DatabaseConfig(BaseModel):
    """Connection and write settings for the graph database."""

    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"
    max_connection_pool_size: int = Field(default=50, gt=0)
    connection_acquisition_timeout: int = Field(default=60, gt=0)
    max_connection_lifetime: int = Field(default=3600, gt=0)
    batch_size: int = Field(default=1000, gt=0)
    enable_query_logging: bool = False
    slow_query_threshold_ms: int = Field(default=1000, gt=0)


class AnalysisConfig(BaseModel):
    """Settings for discovery, sharding and complexity thresholds."""

    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    parallel_workers: int = Field(default=8, ge=1, le=64)
    include_tests: bool = False
    exclude_dirs: List[str] = Field(default_factory=lambda: [
        "node_modules", "dist", "build", ".git", "__pycache__", ".venv", "venv", "coverage",
    ])
    exclude_patterns: List[str] = Field(default_factory=lambda: ["*.d.ts", "*.min.js"])
    test_patterns: List[str] = Field(default_factory=lambda: [
        "*.test.*", "*.spec.*", "test_*.py", "*_test.py",
    ])
    function_complexity_threshold: int = Field(default=10, gt=0)
    class_complexity_threshold: int = Field(default=20, gt=0)
    clone_directory: Optional[str] = None


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value}")
        return value


class SystemConfig(BaseModel):
    """Top-level configuration."""

    storage_type: Literal["neo4j", "memory"] = "neo4j"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# (section, field) -> environment variable
ENVIRONMENT_VARIABLES: Dict[Tuple[Optional[str], str], str] = {
    (None, "storage_type"): "STORAGE_TYPE",
    ("database", "uri"): "NEO4J_URI",
    ("database", "username"): "NEO4J_USERNAME",
    ("database", "password"): "NEO4J_PASSWORD",
    ("database", "database"): "NEO4J_DATABASE",
    ("database", "max_connection_pool_size"): "NEO4J_MAX_POOL_SIZE",
    ("database", "connection_acquisition_timeout"): "NEO4J_ACQUISITION_TIMEOUT",
    ("database", "batch_size"): "NEO4J_BATCH_SIZE",
    ("database", "enable_query_logging"): "NEO4J_ENABLE_QUERY_LOGGING",
    ("database", "slow_query_threshold_ms"): "NEO4J_SLOW_QUERY_THRESHOLD",
    ("analysis", "max_file_size"): "MAX_FILE_SIZE",
    ("analysis", "parallel_workers"): "PARALLEL_WORKERS",
    ("analysis", "include_tests"): "INCLUDE_TESTS",
    ("analysis", "exclude_dirs"): "EXCLUDE_DIRS",
    ("analysis", "function_complexity_threshold"): "FUNCTION_COMPLEXITY_THRESHOLD",
    ("analysis", "class_complexity_threshold"): "CLASS_COMPLEXITY_THRESHOLD",
    ("analysis", "clone_directory"): "CLONE_DIRECTORY",
    ("logging", "level"): "LOG_LEVEL",
}

_LIST_FIELDS = {"exclude_dirs"}


def load_config(env_file: Optional[str] = None, use_dotenv: bool = True,
                **overrides: Any) -> SystemConfig:
    """
    Build a SystemConfig from environment variables.

    Args:
        env_file: Optional path to a .env file; defaults to the nearest one from the cwd
        use_dotenv: Whether to read a .env file at all
        **overrides: Top-level sections or fields that take precedence over the environment

    Returns:
        Validated configuration

    Raises:
        ValidationError: If any value fails validation
    """
    if use_dotenv:
        dotenv_path = env_file or find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
            logger.debug(f"Loaded environment from {dotenv_path}")

    raw: Dict[str, Any] = {}
    for (section, field), variable in ENVIRONMENT_VARIABLES.items():
        value: Any = os.environ.get(variable)
        if value is None or value == "":
            continue
        if field in _LIST_FIELDS:
            value = [item.strip() for item in value.split(",") if item.strip()]
        if section is None:
            raw[field] = value
        else:
            raw.setdefault(section, {})[field] = value

    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(raw.get(key), dict):
            raw[key].update(value)
        else:
            raw[key] = value

    try:
        return SystemConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid configuration: {e}") from e
