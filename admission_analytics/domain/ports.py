"""Domain Ports - Abstract Contracts for the Admissions Store.

This module defines the Port interface that storage adapters must implement,
together with the Result type and the exception hierarchy shared by every
layer. The reporting catalog only ever talks to an injected store through
this contract, so it can run against DuckDB or a plain in-memory frame.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (DuckDB, in-memory) implement AdmissionStorePort
    - Failures are communicated via Result, not exceptions, at the store seam
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

import pandas as pd

T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Batch report execution relies on this type so that one failing query
    is recorded as a failure instead of aborting the whole catalog.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StorageError, QueryExecutionError, etc.)
        error_details: Additional error context (query name, table, etc.)

    Example:
        ```python
        result = store.fetch_admissions()
        if result.is_success():
            frame = result.value
        else:
            logger.error(result.error)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result."""
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "StorageError", "QueryExecutionError")
            error_details: Additional context (query name, operation, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class AnalyticsError(Exception):
    """Base exception for all admission analytics errors."""
    pass


class DataQualityError(AnalyticsError):
    """Raised when data-quality defects must stop a caller.

    The quality check itself never raises; it only counts defects. Callers
    that gate on the counts (e.g. ``run --fail-on-defects``) raise this.

    Attributes:
        report: The quality report that triggered the error
    """

    def __init__(self, message: str, report: Optional[dict] = None):
        super().__init__(message)
        self.report = report or {}


class EnrichmentError(AnalyticsError):
    """Raised when derived fields cannot be computed for a record.

    This covers ages outside every defined bucket and dates that are present
    but cannot be parsed. It is never raised for ordinary nulls.

    Attributes:
        patient_ids: Identifiers of the offending records
        details: Additional error context
    """

    def __init__(self, message: str, patient_ids: Optional[list] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.patient_ids = patient_ids or []
        self.details = details or {}


class QueryExecutionError(AnalyticsError):
    """Raised when a reporting query fails to execute.

    Attributes:
        query_name: Name of the catalog query that failed
    """

    def __init__(self, message: str, query_name: Optional[str] = None):
        super().__init__(message)
        self.query_name = query_name


class UnknownReportError(QueryExecutionError):
    """Raised when a report or view name is not part of the catalog."""
    pass


class SourceNotFoundError(AnalyticsError):
    """Raised when an input file for the loader cannot be found.

    Attributes:
        source: The source path that was not found
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class StorageError(AnalyticsError):
    """Raised when a store operation fails.

    Attributes:
        operation: The store operation that failed (connect, load, etc.)
        details: Additional error context
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


# ============================================================================
# Storage Port
# ============================================================================

class AdmissionStorePort(ABC):
    """Abstract contract for the patient admissions store.

    The store owns the single ``patient_admissions`` table. It is created
    once, populated by an external loader, mutated exactly once by the
    enrichment stage and read-only afterwards.

    Example Usage:
        ```python
        store = DuckDBAdmissionStore(db_path=":memory:")
        store.initialize_schema()
        store.load_dataframe(raw_frame)

        frame = store.fetch_admissions().value
        ```
    """

    #: Names of the views every store exposes
    VIEW_NAMES = ("monthly_kpis", "condition_summary")

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create the base table (and its id sequence) if missing."""
        pass

    @abstractmethod
    def load_dataframe(self, df: pd.DataFrame) -> Result[int]:
        """Bulk-insert raw admission rows.

        Parameters:
            df: Frame whose columns are a subset of the base columns.
                Missing ``patient_id`` values are assigned by the store.

        Returns:
            Result[int]: Number of rows inserted or error
        """
        pass

    @abstractmethod
    def fetch_admissions(self) -> Result[pd.DataFrame]:
        """Return every admission row, base and derived columns, by patient_id."""
        pass

    @abstractmethod
    def write_enrichment(self, df: pd.DataFrame) -> Result[int]:
        """Persist normalized names and derived columns.

        Parameters:
            df: Frame with ``patient_id``, ``name``, ``length_of_stay`` and
                ``age_group`` columns

        Returns:
            Result[int]: Number of rows updated or error
        """
        pass

    @abstractmethod
    def create_views(self) -> Result[list[str]]:
        """Create (or replace) the summary views."""
        pass

    @abstractmethod
    def read_view(self, view_name: str) -> Result[pd.DataFrame]:
        """Read one of the summary views by name."""
        pass

    @abstractmethod
    def export_projection(self) -> Result[pd.DataFrame]:
        """Return the flat, denormalized export ordered by admission date."""
        pass

    def ping(self) -> Result[None]:
        """Check that the store can answer a trivial query.

        Note:
            Default implementation assumes an always-available store.
        """
        return Result.success_result(None)

    def close(self) -> None:
        """Release resources held by the store."""
        pass
