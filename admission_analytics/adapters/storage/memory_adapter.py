"""In-memory Storage Adapter.

Holds the ``patient_admissions`` table as a pandas DataFrame. Used for
fixture-driven tests and for small one-shot runs where an embedded
database file is unnecessary. Views and the export projection are
computed on read from the same builders the catalog uses.
"""

import logging
from typing import Optional

import pandas as pd

from admission_analytics.domain.admission_record import DATE_COLUMNS, TABLE_COLUMNS
from admission_analytics.domain.ports import AdmissionStorePort, Result, StorageError
from admission_analytics.domain.services.views import (
    build_condition_summary,
    build_export_projection,
    build_monthly_kpis,
)

logger = logging.getLogger(__name__)

_VIEW_BUILDERS = {
    "monthly_kpis": build_monthly_kpis,
    "condition_summary": build_condition_summary,
}


class InMemoryAdmissionStore(AdmissionStorePort):
    """AdmissionStorePort backed by a pandas DataFrame.

    Parameters:
        frame: Optional initial table contents (loaded as if by load_dataframe)
    """

    def __init__(self, frame: Optional[pd.DataFrame] = None):
        self._table = pd.DataFrame(columns=TABLE_COLUMNS)
        self._next_id = 1
        self._views_created = False
        if frame is not None:
            result = self.load_dataframe(frame)
            if result.is_failure():
                raise StorageError(result.error, operation="__init__")

    def initialize_schema(self) -> Result[None]:
        return Result.success_result(None)

    def load_dataframe(self, df: pd.DataFrame) -> Result[int]:
        """Append rows, assigning patient ids to rows that lack one."""
        if df.empty:
            return Result.success_result(0)

        unknown = [column for column in df.columns if column not in TABLE_COLUMNS]
        if unknown:
            return Result.failure_result(
                StorageError(f"Unknown columns for patient_admissions: {unknown}", operation="load_dataframe"),
                error_type="StorageError"
            )

        incoming = df.reindex(columns=TABLE_COLUMNS).copy()
        for column in DATE_COLUMNS:
            incoming[column] = pd.to_datetime(incoming[column], errors="coerce", format="mixed")

        ids = pd.to_numeric(incoming["patient_id"], errors="coerce")
        missing = ids.isna()
        if missing.any():
            first_id = max(self._next_id, int(ids.max()) + 1 if ids.notna().any() else 1)
            ids.loc[missing] = list(range(first_id, first_id + int(missing.sum())))
        incoming["patient_id"] = ids.astype(int)

        duplicates = set(incoming["patient_id"]) & set(self._table["patient_id"])
        if duplicates or incoming["patient_id"].duplicated().any():
            return Result.failure_result(
                StorageError("Duplicate patient_id values", operation="load_dataframe",
                             details={"patient_ids": sorted(duplicates)}),
                error_type="StorageError"
            )

        self._table = incoming if self._table.empty else pd.concat([self._table, incoming], ignore_index=True)
        self._next_id = int(self._table["patient_id"].max()) + 1
        logger.info(f"Loaded {len(incoming)} rows into in-memory patient_admissions")
        return Result.success_result(len(incoming))

    def fetch_admissions(self) -> Result[pd.DataFrame]:
        return Result.success_result(
            self._table.sort_values("patient_id", kind="mergesort").reset_index(drop=True).copy()
        )

    def write_enrichment(self, df: pd.DataFrame) -> Result[int]:
        """Overwrite name and derived columns for matching patient ids."""
        try:
            updates = df.set_index("patient_id")[["name", "length_of_stay", "age_group"]]
            table = self._table.set_index("patient_id")
            matched = table.index.intersection(updates.index)
            table["length_of_stay"] = table["length_of_stay"].astype(object)
            table["age_group"] = table["age_group"].astype(object)
            for column in ("name", "length_of_stay", "age_group"):
                values = updates.loc[matched, column].astype(object)
                table.loc[matched, column] = values.where(values.notna(), None)
            self._table = table.reset_index()[TABLE_COLUMNS]
            return Result.success_result(len(matched))
        except KeyError as e:
            return Result.failure_result(
                StorageError(f"Enrichment frame is missing column {str(e)}", operation="write_enrichment"),
                error_type="StorageError"
            )

    def create_views(self) -> Result[list[str]]:
        self._views_created = True
        return Result.success_result(list(self.VIEW_NAMES))

    def read_view(self, view_name: str) -> Result[pd.DataFrame]:
        builder = _VIEW_BUILDERS.get(view_name)
        if builder is None or not self._views_created:
            return Result.failure_result(
                StorageError(f"View does not exist: {view_name}", operation="read_view"),
                error_type="StorageError",
                error_details={"view_name": view_name}
            )
        return Result.success_result(builder(self._table))

    def export_projection(self) -> Result[pd.DataFrame]:
        return Result.success_result(build_export_projection(self._table))
