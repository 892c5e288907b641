"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from admission_analytics.domain.services.reporting import CatalogConfig
from admission_analytics.infrastructure.config_manager import (
    ENV_PREFIX,
    DatabaseConfig,
    get_database_config,
)

# Application metadata
APP_NAME = "Admission-Analytics"
APP_VERSION = "1.0.0"

DEFAULT_EXPORT_DIR = "exports"


class Settings:
    """Application settings loaded from configuration manager and environment.

    Every value can be overridden with an ``AA_``-prefixed environment
    variable; the database configuration is loaded lazily on first access.
    """

    def __init__(self):
        self._db_config: Optional[DatabaseConfig] = None

        self.app_name = os.getenv(f"{ENV_PREFIX}APP_NAME", APP_NAME)

        # Logging
        self.log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO")
        self.json_logs = os.getenv(f"{ENV_PREFIX}JSON_LOGS", "false").lower() == "true"

        # Enrichment
        self.strict_enrichment = os.getenv(f"{ENV_PREFIX}STRICT_ENRICHMENT", "true").lower() == "true"

        # Reporting catalog
        self.high_cost_percentile = float(os.getenv(f"{ENV_PREFIX}HIGH_COST_PERCENTILE", "0.90"))
        self.top_cases_limit = int(os.getenv(f"{ENV_PREFIX}TOP_CASES_LIMIT", "10"))
        self.hospital_min_admissions = int(os.getenv(f"{ENV_PREFIX}HOSPITAL_MIN_ADMISSIONS", "5"))
        self.hospital_rank_limit = int(os.getenv(f"{ENV_PREFIX}HOSPITAL_RANK_LIMIT", "20"))
        self.report_workers = int(os.getenv(f"{ENV_PREFIX}REPORT_WORKERS", "1"))

        # Export
        self.export_dir = os.getenv(f"{ENV_PREFIX}EXPORT_DIR", DEFAULT_EXPORT_DIR)

    @property
    def db_config(self) -> DatabaseConfig:
        """Database configuration, loaded from the environment on first access."""
        if self._db_config is None:
            self._db_config = get_database_config()
        return self._db_config

    def get_db_path(self) -> str:
        """Get database path for DuckDB.

        Returns:
            Database path or ':memory:' for in-memory database
        """
        if self.db_config.db_type == "duckdb":
            return self.db_config.db_path or ":memory:"
        raise ValueError(f"Database type '{self.db_config.db_type}' does not use db_path")

    def catalog_config(self) -> CatalogConfig:
        """Thresholds for the reporting catalog."""
        return CatalogConfig(
            high_cost_percentile=self.high_cost_percentile,
            top_cases_limit=self.top_cases_limit,
            hospital_min_admissions=self.hospital_min_admissions,
            hospital_rank_limit=self.hospital_rank_limit,
        )


# Global settings instance
settings = Settings()
