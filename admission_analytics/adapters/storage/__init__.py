"""Storage adapters for Admission Analytics.

This module contains storage adapters that implement the AdmissionStorePort
interface, plus a factory that picks one from a DatabaseConfig.
"""

from typing import Optional

from admission_analytics.adapters.storage.duckdb_adapter import DuckDBAdmissionStore
from admission_analytics.adapters.storage.memory_adapter import InMemoryAdmissionStore
from admission_analytics.domain.ports import AdmissionStorePort
from admission_analytics.infrastructure.config_manager import DatabaseConfig, get_database_config


def create_store(db_config: Optional[DatabaseConfig] = None) -> AdmissionStorePort:
    """Build the store configured by ``db_config`` (default: from environment).

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = db_config or get_database_config()
    if db_config.db_type == "duckdb":
        return DuckDBAdmissionStore(db_config=db_config)
    if db_config.db_type == "memory":
        return InMemoryAdmissionStore()
    raise ValueError(f"Unsupported database type: {db_config.db_type}")


__all__ = ["DuckDBAdmissionStore", "InMemoryAdmissionStore", "create_store"]
