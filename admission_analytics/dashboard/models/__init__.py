"""API Pydantic models."""

from admission_analytics.dashboard.models.health import DatabaseHealth, HealthResponse
from admission_analytics.dashboard.models.reports import (
    CatalogResponse,
    QualityResponse,
    ReportDefinitionModel,
    ReportResponse,
    TableResponse,
)

__all__ = [
    "DatabaseHealth",
    "HealthResponse",
    "CatalogResponse",
    "QualityResponse",
    "ReportDefinitionModel",
    "ReportResponse",
    "TableResponse",
]
