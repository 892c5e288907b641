"""Configuration Manager for storage settings.

This module loads the storage configuration for the analytics store from
environment variables (optionally seeded from a ``.env`` file) or a JSON
file.

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation prevents runtime errors
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "AA_"

SUPPORTED_DB_TYPES = ["duckdb", "memory"]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class DatabaseConfig(BaseModel):
    """Storage configuration model.

    Parameters:
        db_type: Store implementation ('duckdb' or 'memory')
        db_path: Path to the DuckDB database file (':memory:' or None for in-memory)
        read_only: Open the DuckDB file read-only (reporting-only deployments)
    """

    db_type: str = Field(default="duckdb", description="Store type (duckdb, memory)")
    db_path: Optional[str] = Field(None, description="Path to database file (for DuckDB)")
    read_only: bool = Field(default=False, description="Open the database read-only")

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        """Validate store type."""
        if v.lower() not in SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported database type: {v}. Supported: {SUPPORTED_DB_TYPES}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the database directory exists (if a path is provided)."""
        if v is None or v == ":memory:":
            return v

        db_path_obj = Path(v)
        # The file itself may not exist yet
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")

        return str(db_path_obj)

    def get_connection_string(self) -> str:
        """DuckDB database path, or ':memory:'."""
        if self.db_type == "memory":
            return ":memory:"
        return self.db_path or ":memory:"


class ConfigManager:
    """Configuration manager for storage settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        db_config = config.get_database_config()

        # Load from file
        config = ConfigManager.from_file("config.json")
        db_config = config.get_database_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - AA_DB_TYPE: Store type (duckdb, memory)
            - AA_DB_PATH: Path to database file (for DuckDB)
            - AA_DB_READ_ONLY: Open the database read-only (true/false)

        A ``.env`` file in the project root is loaded first; variables already
        set in the environment win.

        Returns:
            ConfigManager instance
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        config_data = {
            "database": {
                "db_type": os.getenv(f"{ENV_PREFIX}DB_TYPE", "duckdb"),
                "db_path": os.getenv(f"{ENV_PREFIX}DB_PATH"),
                "read_only": _env_flag(f"{ENV_PREFIX}DB_READ_ONLY"),
            }
        }

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    def get_database_config(self) -> DatabaseConfig:
        """Get (and cache) the validated database configuration."""
        if self._database_config is None:
            db_config_data = {
                key: value
                for key, value in self._config_data.get("database", {}).items()
                if value is not None
            }
            self._database_config = DatabaseConfig(**db_config_data)

        return self._database_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "database.db_path")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


# ============================================================================
# Convenience Functions
# ============================================================================

def get_database_config() -> DatabaseConfig:
    """Database configuration from the environment.

    Defaults to an in-memory DuckDB database if nothing is configured.
    """
    config_manager = ConfigManager.from_environment()
    return config_manager.get_database_config()
