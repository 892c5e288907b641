"""Report, view, export and quality endpoints.

Every endpoint is read-only. Unknown report or view names map to 404;
query and store failures map to 500 with the error message as detail.
"""

import logging
from typing import Any, Literal, Optional

import pandas as pd
from fastapi import APIRouter, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import PlainTextResponse

from admission_analytics.dashboard.api.dependencies import CatalogDep, StorageDep
from admission_analytics.dashboard.models.reports import (
    CatalogResponse,
    QualityResponse,
    ReportDefinitionModel,
    ReportResponse,
    TableResponse,
)
from admission_analytics.domain.ports import AdmissionStorePort, QueryExecutionError, UnknownReportError
from admission_analytics.domain.services.data_quality import check_data_quality
from admission_analytics.domain.services.reporting import THEMES, ReportingCatalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


def frame_to_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """JSON-ready rows: NumPy scalars become Python values, nulls become None."""
    plain = frame.astype(object)
    plain = plain.where(plain.notna(), None)
    return jsonable_encoder(plain.to_dict(orient="records"))


def _table(name: str, frame: pd.DataFrame, limit: Optional[int] = None, offset: int = 0) -> dict:
    page = frame.iloc[offset:] if limit is None else frame.iloc[offset:offset + limit]
    return {
        "name": name,
        "columns": [str(column) for column in frame.columns],
        "row_count": len(frame),
        "rows": frame_to_records(page),
    }


@router.get("/reports", response_model=CatalogResponse)
async def list_reports(
    theme: Optional[str] = Query(None, description=f"Only this theme ({', '.join(THEMES)})")
) -> CatalogResponse:
    """List the report catalog."""
    if theme is not None and theme not in THEMES:
        raise HTTPException(status_code=400, detail=f"Unknown theme: {theme}")

    definitions = [
        ReportDefinitionModel(
            name=definition.name,
            theme=definition.theme,
            description=definition.description,
            columns=list(definition.columns),
        )
        for definition in ReportingCatalog.list_queries(theme)
    ]
    return CatalogResponse(count=len(definitions), reports=definitions)


@router.get("/reports/{name}", response_model=ReportResponse)
async def get_report(name: str, catalog: CatalogDep) -> ReportResponse:
    """Run one catalog query."""
    try:
        definition = catalog.get_definition(name)
        frame = catalog.run(name)
    except UnknownReportError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QueryExecutionError as e:
        logger.error(f"Report '{name}' failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    return ReportResponse(
        theme=definition.theme,
        description=definition.description,
        **_table(name, frame),
    )


@router.get("/views/{name}", response_model=TableResponse)
async def get_view(name: str, storage: StorageDep) -> TableResponse:
    """Read one of the persisted summary views."""
    if name not in AdmissionStorePort.VIEW_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown view: {name}")

    result = storage.read_view(name)
    if result.is_failure():
        raise HTTPException(status_code=500, detail=result.error)
    return TableResponse(**_table(name, result.value))


@router.get("/export", response_model=None)
async def get_export(
    storage: StorageDep,
    format: Literal["json", "csv"] = Query("json", description="Response format"),
    limit: Optional[int] = Query(None, ge=1, description="Page size (JSON only)"),
    offset: int = Query(0, ge=0, description="Rows to skip (JSON only)"),
):
    """The flat export projection, as paged JSON or a full CSV download."""
    result = storage.export_projection()
    if result.is_failure():
        raise HTTPException(status_code=500, detail=result.error)

    if format == "csv":
        return PlainTextResponse(
            result.value.to_csv(index=False),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="admissions_export.csv"'},
        )
    return TableResponse(**_table("export", result.value, limit=limit, offset=offset))


@router.get("/quality", response_model=QualityResponse)
async def get_quality(storage: StorageDep) -> QualityResponse:
    """Data-quality defect counts for the current table."""
    result = storage.fetch_admissions()
    if result.is_failure():
        raise HTTPException(status_code=500, detail=result.error)

    quality = check_data_quality(result.value)
    return QualityResponse(defect_count=quality.defect_count, **quality.model_dump())
