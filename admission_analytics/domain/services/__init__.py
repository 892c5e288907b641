"""Domain Services.

This package contains the quality check, enrichment, view builders and the
reporting catalog. None of them depends on a particular store.
"""

from admission_analytics.domain.services.data_quality import DataQualityReport, check_data_quality
from admission_analytics.domain.services.enrichment import EnrichmentReport, EnrichmentService
from admission_analytics.domain.services.reporting import QUERY_CATALOG, CatalogConfig, ReportingCatalog

__all__ = [
    "DataQualityReport",
    "check_data_quality",
    "EnrichmentReport",
    "EnrichmentService",
    "QUERY_CATALOG",
    "CatalogConfig",
    "ReportingCatalog",
]
