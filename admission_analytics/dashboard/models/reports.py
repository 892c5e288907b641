"""Report, view and export models for the analytics API."""

from typing import Any

from pydantic import BaseModel, Field


class ReportDefinitionModel(BaseModel):
    """A catalog entry as exposed to BI clients."""
    name: str
    theme: str
    description: str
    columns: list[str]


class CatalogResponse(BaseModel):
    count: int
    reports: list[ReportDefinitionModel]


class TableResponse(BaseModel):
    """Rows of a report, view or export page.

    Attributes:
        name: Report or view name
        columns: Column names, in order
        row_count: Number of rows in the full result
        rows: Result rows (nulls as JSON null, dates as ISO strings)
    """
    name: str
    columns: list[str]
    row_count: int
    rows: list[dict[str, Any]] = Field(default_factory=list)


class ReportResponse(TableResponse):
    theme: str
    description: str


class QualityResponse(BaseModel):
    """Data-quality defect counts."""
    total_records: int
    negative_billing: int
    invalid_age: int
    date_errors: int
    defect_count: int
