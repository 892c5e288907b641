"""CSV Loader for the admissions table.

Reads a healthcare admissions CSV (the public "healthcare dataset" layout
with headers such as ``Name`` or ``Blood Type``, or a file that already
uses snake_case column names), maps its headers onto the base columns and
bulk-inserts the rows into an admissions store.

The loader performs no validation or rejection: out-of-range values are
loaded as-is and left for the data-quality check. Only type coercion is
applied so the rows fit the table (dates to dates, numbers to numbers);
values that cannot be coerced become nulls and are counted in the log.
Rows whose dates could not be parsed are remembered by patient id so the
enrichment step can report them as malformed.

Architecture:
    - Depends only on the AdmissionStorePort contract
    - Configurable column mapping via dictionary or header detection
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from admission_analytics.domain.admission_record import BASE_COLUMNS, DATE_COLUMNS
from admission_analytics.domain.ports import AdmissionStorePort, Result, SourceNotFoundError, StorageError

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = ["patient_id", "age", "billing_amount", "room_number"]

# Header spellings seen in admissions exports besides the snake_case form
FIELD_VARIATIONS = {
    "patient_id": ["patient_id", "patientid", "id", "record_id"],
    "name": ["name", "patient_name"],
    "date_of_admission": ["date_of_admission", "admission_date", "admitted"],
    "discharge_date": ["discharge_date", "date_of_discharge", "discharged"],
    "billing_amount": ["billing_amount", "billing", "amount"],
    "test_results": ["test_results", "test_result"],
}


def _normalize_header(header: str) -> str:
    """``"Blood Type"`` -> ``"blood_type"``."""
    return "_".join(str(header).strip().lower().replace("-", " ").split())


class AdmissionCSVLoader:
    """Loads admission rows from CSV files.

    Parameters:
        column_mapping: Dictionary mapping base column names to CSV column
            names. If None, the mapping is detected from the header row.
        delimiter: CSV delimiter character (default: ',', '.tsv' files use tab)
        encoding: File encoding

    Example Usage:
        ```python
        loader = AdmissionCSVLoader()
        result = loader.load("healthcare_dataset.csv", store)
        if result.is_success():
            print(f"Loaded {result.value} rows")
        ```
    """

    def __init__(
        self,
        column_mapping: Optional[Dict[str, str]] = None,
        delimiter: str = ',',
        encoding: str = 'utf-8'
    ):
        self.column_mapping = column_mapping or {}
        self.delimiter = delimiter
        self.encoding = encoding
        self.malformed_date_ids: List[int] = []

    def can_load(self, source: str) -> bool:
        """True for paths ending in .csv or .tsv."""
        return bool(source) and Path(source).suffix.lower() in ('.csv', '.tsv')

    def detect_column_mapping(self, headers: List[str]) -> Dict[str, str]:
        """Match CSV headers to base columns.

        Headers are compared after lower-casing and replacing spaces with
        underscores, so ``"Date of Admission"`` maps to ``date_of_admission``.

        Returns:
            Mapping from base column names to CSV column names
        """
        normalized = {}
        for header in headers:
            normalized.setdefault(_normalize_header(header), header)

        mapping = {}
        for column in BASE_COLUMNS:
            for variation in FIELD_VARIATIONS.get(column, [column]):
                if variation in normalized:
                    mapping[column] = normalized[variation]
                    break
        return mapping

    def read(self, source: str) -> pd.DataFrame:
        """Read a CSV file into a frame with base column names.

        Raises:
            SourceNotFoundError: If the file does not exist
        """
        frame, _ = self._read(source)
        return frame

    def _read(self, source: str) -> Tuple[pd.DataFrame, pd.Series]:
        """Read ``source``; also return the mask of rows with an unparseable date."""
        source_path = Path(source)
        if not source_path.exists():
            raise SourceNotFoundError(f"CSV source not found: {source}", source=source)

        delimiter = '\t' if source_path.suffix.lower() == '.tsv' else self.delimiter
        raw = pd.read_csv(source_path, delimiter=delimiter, encoding=self.encoding, dtype=str, keep_default_na=True)

        mapping = self.column_mapping or self.detect_column_mapping(raw.columns.tolist())
        unmapped = [header for header in raw.columns if header not in mapping.values()]
        if unmapped:
            logger.info(f"Ignoring unmapped CSV columns: {unmapped}")

        frame = raw.rename(columns={csv_col: column for column, csv_col in mapping.items()})
        frame = frame[[column for column in BASE_COLUMNS if column in frame.columns]].copy()

        for column in frame.columns:
            if pd.api.types.is_string_dtype(frame[column]) or pd.api.types.is_object_dtype(frame[column]):
                frame[column] = frame[column].str.strip()

        for column in NUMERIC_COLUMNS:
            if column in frame.columns:
                frame[column], _ = self._coerce(frame[column], pd.to_numeric(frame[column], errors="coerce"))

        malformed_dates = pd.Series(False, index=frame.index)
        for column in DATE_COLUMNS:
            if column in frame.columns:
                parsed = pd.to_datetime(frame[column], errors="coerce", format="mixed")
                frame[column], lost = self._coerce(frame[column], parsed)
                malformed_dates |= lost

        logger.info(f"Read {len(frame)} rows from {source}")
        return frame, malformed_dates

    def _coerce(self, raw: pd.Series, coerced: pd.Series) -> Tuple[pd.Series, pd.Series]:
        """Return the coerced column and the mask of values lost to coercion."""
        lost = raw.notna() & (raw != "") & coerced.isna()
        if lost.any():
            logger.warning(
                f"{int(lost.sum())} values in column '{raw.name}' could not be parsed and were loaded as null"
            )
        return coerced, lost

    def _assign_ids(self, frame: pd.DataFrame, store: AdmissionStorePort) -> pd.DataFrame:
        """Give every row without a patient_id the next id the store would use."""
        existing = store.fetch_admissions()
        if existing.is_failure():
            raise StorageError(existing.error, operation="fetch_admissions")

        frame = frame.copy()
        if "patient_id" not in frame.columns:
            frame.insert(0, "patient_id", None)
        ids = pd.to_numeric(frame["patient_id"], errors="coerce")
        missing = ids.isna()
        if missing.any():
            taken = [int(value) for value in (existing.value["patient_id"].max(), ids.max()) if pd.notna(value)]
            first_id = max(taken, default=0) + 1
            ids.loc[missing] = list(range(first_id, first_id + int(missing.sum())))
        frame["patient_id"] = ids.astype(int)
        return frame

    def load(self, source: str, store: AdmissionStorePort) -> Result[int]:
        """Read ``source`` and bulk-insert it into ``store``.

        After a successful load, ``malformed_date_ids`` lists the patient ids
        of rows whose admission or discharge date could not be parsed. Those
        dates are stored as null; pass the ids to ``run_pipeline`` so that
        enrichment reports them as malformed rather than as missing.

        Returns:
            Result[int]: Number of rows inserted or error
        """
        self.malformed_date_ids = []
        try:
            frame, malformed_dates = self._read(source)
        except SourceNotFoundError as e:
            return Result.failure_result(e, error_details={"source": source})
        except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
            logger.error(f"Failed to parse CSV {source}: {str(e)}")
            return Result.failure_result(e, error_type="ParserError", error_details={"source": source})

        init_result = store.initialize_schema()
        if init_result.is_failure():
            return init_result

        if malformed_dates.any():
            try:
                frame = self._assign_ids(frame, store)
            except StorageError as e:
                return Result.failure_result(e, error_details={"source": source})

        result = store.load_dataframe(frame)
        if result.is_success() and malformed_dates.any():
            self.malformed_date_ids = frame.loc[malformed_dates, "patient_id"].tolist()
            logger.warning(
                f"{len(self.malformed_date_ids)} rows from {source} have unparseable dates: "
                f"patient ids {self.malformed_date_ids}"
            )
        return result
