"""Dependency injection for the analytics API.

This module provides dependency injection functions for FastAPI, reusing
the same store factory as the CLI.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from admission_analytics.adapters.storage import create_store
from admission_analytics.domain.ports import AdmissionStorePort
from admission_analytics.domain.services.reporting import ReportingCatalog
from admission_analytics.infrastructure.config_manager import get_database_config
from admission_analytics.infrastructure.settings import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_adapter() -> AdmissionStorePort:
    """Get the configured admissions store (cached for the process).

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = get_database_config()
    logger.debug(f"Creating {db_config.db_type} store with path: {db_config.db_path or ':memory:'}")
    return create_store(db_config)


# Type alias for dependency injection
StorageDep = Annotated[AdmissionStorePort, Depends(get_storage_adapter)]


def get_catalog(storage: StorageDep) -> ReportingCatalog:
    return ReportingCatalog(storage, settings.catalog_config())


CatalogDep = Annotated[ReportingCatalog, Depends(get_catalog)]
