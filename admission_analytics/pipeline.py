"""Cleaning and enrichment pipeline.

Runs the stages that follow loading, in order, against one admissions
store:

1. Schema initialization
2. Data-quality check (counts defects, never corrects them)
3. Name normalization and derived fields (EnrichmentService)
4. Enrichment write-back
5. View creation

After ``run_pipeline`` returns, the table is read-only and the reporting
catalog can run against it.

Architecture:
    - Follows Hexagonal Architecture principles
    - The store is injected; the pipeline only talks to AdmissionStorePort
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from admission_analytics.domain.ports import AdmissionStorePort, DataQualityError, Result, StorageError
from admission_analytics.domain.services.data_quality import DataQualityReport, check_data_quality
from admission_analytics.domain.services.enrichment import EnrichmentReport, EnrichmentService

logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    """Outcome of one pipeline run.

    Attributes:
        quality: Defect counts found before enrichment
        enrichment: Enrichment anomalies and the enriched frame
        rows_updated: Rows written back by the store
        views: Names of the views created
        duration_seconds: Wall-clock time of the run
    """
    quality: DataQualityReport
    enrichment: EnrichmentReport
    rows_updated: int = 0
    views: list = field(default_factory=list)
    duration_seconds: float = 0.0

    def summary(self) -> dict:
        return {
            "quality": self.quality.model_dump(),
            "enrichment": self.enrichment.summary(),
            "rows_updated": self.rows_updated,
            "views": list(self.views),
            "duration_seconds": round(self.duration_seconds, 3),
        }


def _unwrap(result: Result, operation: str):
    """Return a successful Result's value or raise StorageError."""
    if result.is_failure():
        logger.error(f"{operation} failed: {result.error}")
        raise StorageError(f"{operation} failed: {result.error}", operation=operation, details=result.error_details)
    return result.value


def run_pipeline(
    store: AdmissionStorePort,
    strict: bool = True,
    fail_on_defects: bool = False,
    enrichment_service: Optional[EnrichmentService] = None,
    malformed_date_ids: Optional[list] = None
) -> PipelineReport:
    """Check, enrich and publish the admissions table held by ``store``.

    Parameters:
        store: Store holding the loaded ``patient_admissions`` table
        strict: Raise on rows whose derived fields cannot be computed
        fail_on_defects: Raise DataQualityError instead of enriching when
            the quality check finds any defect
        enrichment_service: Service to use (default: EnrichmentService(strict))
        malformed_date_ids: Patient ids whose dates the loader could not
            parse (see AdmissionCSVLoader.malformed_date_ids)

    Returns:
        PipelineReport for the run

    Raises:
        StorageError: If a store operation fails
        DataQualityError: If fail_on_defects is set and defects were found
        EnrichmentError: In strict mode, if a row cannot be enriched
    """
    started = time.perf_counter()
    service = enrichment_service or EnrichmentService(strict=strict)

    logger.info("Initializing storage schema...")
    _unwrap(store.initialize_schema(), "initialize_schema")

    frame = _unwrap(store.fetch_admissions(), "fetch_admissions")
    logger.info(f"Fetched {len(frame)} admission rows")

    quality = check_data_quality(frame)
    if fail_on_defects and quality.has_defects:
        raise DataQualityError(
            f"Data quality check found {quality.defect_count} defects",
            report=quality.model_dump(),
        )

    enrichment = service.enrich(frame, malformed_date_ids=malformed_date_ids)
    rows_updated = _unwrap(store.write_enrichment(enrichment.frame), "write_enrichment")
    views = _unwrap(store.create_views(), "create_views")

    report = PipelineReport(
        quality=quality,
        enrichment=enrichment,
        rows_updated=rows_updated,
        views=views,
        duration_seconds=time.perf_counter() - started,
    )
    logger.info(f"Pipeline complete: {report.summary()}")
    return report
