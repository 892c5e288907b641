"""DuckDB Storage Adapter.

This adapter implements the AdmissionStorePort contract on DuckDB, an
in-process OLAP database suited to the read-mostly analytical workload of
the reporting layer.

Architecture:
    - Implements AdmissionStorePort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports and models
    - The enrichment write-back runs in a single transaction
    - Summary views are real DuckDB views so BI tools can query them by name
"""

import logging
from pathlib import Path
from typing import Optional

import duckdb
import pandas as pd

from admission_analytics.domain.admission_record import DATE_COLUMNS, TABLE_COLUMNS
from admission_analytics.domain.ports import AdmissionStorePort, Result, StorageError
from admission_analytics.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)

TABLE_NAME = "patient_admissions"

#: DuckDB type of every table column; loads cast incoming values to these
COLUMN_TYPES = {
    "patient_id": "INTEGER",
    "name": "VARCHAR(100)",
    "age": "INTEGER",
    "gender": "VARCHAR(10)",
    "blood_type": "VARCHAR(5)",
    "medical_condition": "VARCHAR(50)",
    "date_of_admission": "DATE",
    "doctor": "VARCHAR(100)",
    "hospital": "VARCHAR(200)",
    "insurance_provider": "VARCHAR(50)",
    "billing_amount": "DECIMAL(10, 2)",
    "room_number": "INTEGER",
    "admission_type": "VARCHAR(20)",
    "discharge_date": "DATE",
    "medication": "VARCHAR(50)",
    "test_results": "VARCHAR(20)",
    "length_of_stay": "INTEGER",
    "age_group": "VARCHAR(20)",
}

# Averages are pinned to six places as DECIMAL before ROUND so that the
# rounding is decimal half-up rather than binary floating point.
VIEW_DEFINITIONS = {
    "monthly_kpis": f"""
        CREATE OR REPLACE VIEW monthly_kpis AS
        SELECT
            strftime(date_of_admission, '%Y-%m') AS month,
            COUNT(*) AS total_admissions,
            COUNT(CASE WHEN admission_type = 'Emergency' THEN 1 END) AS emergency_count,
            CAST(ROUND(CAST(AVG(billing_amount) AS DECIMAL(18, 6)), 2) AS DOUBLE) AS avg_revenue,
            CAST(ROUND(SUM(billing_amount), 2) AS DOUBLE) AS total_revenue,
            CAST(ROUND(CAST(AVG(length_of_stay) AS DECIMAL(18, 6)), 1) AS DOUBLE) AS avg_los
        FROM {TABLE_NAME}
        WHERE date_of_admission IS NOT NULL
        GROUP BY strftime(date_of_admission, '%Y-%m')
    """,
    "condition_summary": f"""
        CREATE OR REPLACE VIEW condition_summary AS
        SELECT
            medical_condition,
            COUNT(*) AS total_cases,
            CAST(ROUND(CAST(AVG(age) AS DECIMAL(18, 6)), 1) AS DOUBLE) AS avg_patient_age,
            CAST(ROUND(CAST(AVG(billing_amount) AS DECIMAL(18, 6)), 2) AS DOUBLE) AS avg_cost,
            CAST(ROUND(CAST(AVG(length_of_stay) AS DECIMAL(18, 6)), 1) AS DOUBLE) AS avg_los,
            COUNT(CASE WHEN test_results = 'Abnormal' THEN 1 END) AS abnormal_results,
            COUNT(CASE WHEN admission_type = 'Emergency' THEN 1 END) AS emergency_admissions
        FROM {TABLE_NAME}
        GROUP BY medical_condition
    """,
}

VIEW_ORDERING = {
    "monthly_kpis": "month",
    "condition_summary": "medical_condition NULLS LAST",
}

EXPORT_QUERY = f"""
    SELECT
        pa.*,
        strftime(pa.date_of_admission, '%Y') AS admission_year,
        strftime(pa.date_of_admission, '%m') AS admission_month,
        CAST(quarter(pa.date_of_admission) AS INTEGER) AS admission_quarter,
        dayname(pa.date_of_admission) AS admission_day
    FROM {TABLE_NAME} pa
    ORDER BY pa.date_of_admission NULLS LAST, pa.patient_id
"""


def _to_python_values(df: pd.DataFrame) -> pd.DataFrame:
    """Object-typed copy with None for every missing value.

    DuckDB then sees SQL NULLs instead of NaN/NaT when it scans the frame.
    """
    converted = df.copy()
    for column in DATE_COLUMNS:
        if column in converted.columns:
            dates = pd.to_datetime(converted[column], errors="coerce", format="mixed")
            converted[column] = dates.dt.date
    converted = converted.astype(object)
    return converted.where(converted.notna(), None)


class DuckDBAdmissionStore(AdmissionStorePort):
    """DuckDB implementation of AdmissionStorePort.

    Parameters:
        db_config: DatabaseConfig from the configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        from admission_analytics.infrastructure.config_manager import get_database_config

        store = DuckDBAdmissionStore(db_config=get_database_config())
        store.initialize_schema()
        store.load_dataframe(frame)
        ```

    Note:
        If both db_config and db_path are provided, db_config takes precedence.
        If neither is provided, defaults to an in-memory database.
    """

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None
    ):
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
            self.read_only = db_config.read_only
        else:
            self.db_path = db_path or ":memory:"
            self.read_only = False

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

        self.db_config = db_config or DatabaseConfig(db_type="duckdb", db_path=self.db_path)
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                if self.db_path == ":memory:":
                    self._connection = duckdb.connect(self.db_path)
                else:
                    self._connection = duckdb.connect(self.db_path, read_only=self.read_only)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    def initialize_schema(self) -> Result[None]:
        """Create the patient_admissions table if it does not exist."""
        if self.read_only:
            # Read-only files cannot run DDL; the table must already exist.
            self._initialized = True
            return Result.success_result(None)

        try:
            conn = self._get_connection()
            columns_sql = ",\n".join(
                f"    {column} {column_type}{' PRIMARY KEY' if column == 'patient_id' else ''}"
                for column, column_type in COLUMN_TYPES.items()
            )
            conn.execute(f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} (\n{columns_sql}\n)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_admissions_date ON {TABLE_NAME}(date_of_admission)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_admissions_condition ON {TABLE_NAME}(medical_condition)")

            self._initialized = True
            logger.info("Database schema initialized successfully")
            return Result.success_result(None)

        except Exception as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError"
            )

    def _ensure_schema(self) -> Optional[Result]:
        if not self._initialized:
            init_result = self.initialize_schema()
            if not init_result.is_success():
                return init_result
        return None

    def _next_patient_id(self, conn: duckdb.DuckDBPyConnection) -> int:
        max_id = conn.execute(f"SELECT MAX(patient_id) FROM {TABLE_NAME}").fetchone()[0]
        return (max_id or 0) + 1

    def load_dataframe(self, df: pd.DataFrame) -> Result[int]:
        """Bulk-insert raw admission rows.

        Rows without a ``patient_id`` get the next ids after the largest one
        already present (in the table or in the frame), in frame order.
        """
        if df.empty:
            return Result.success_result(0)

        try:
            failure = self._ensure_schema()
            if failure is not None:
                return failure

            unknown = [column for column in df.columns if column not in COLUMN_TYPES]
            if unknown:
                raise StorageError(
                    f"No matching columns in '{TABLE_NAME}' for: {unknown}",
                    operation="load_dataframe",
                    details={"df_columns": list(df.columns)}
                )

            conn = self._get_connection()
            incoming = df.copy()
            if "patient_id" not in incoming.columns:
                incoming["patient_id"] = None

            ids = pd.to_numeric(incoming["patient_id"], errors="coerce")
            missing = ids.isna()
            first_id = max(self._next_patient_id(conn), int(ids.max()) + 1 if ids.notna().any() else 1)
            if missing.any():
                ids.loc[missing] = list(range(first_id, first_id + int(missing.sum())))
            incoming["patient_id"] = ids.astype(int)

            columns = [column for column in TABLE_COLUMNS if column in incoming.columns]
            select_sql = ", ".join(f"CAST({column} AS {COLUMN_TYPES[column]})" for column in columns)

            conn.register("df_temp", _to_python_values(incoming[columns]))
            try:
                conn.execute(
                    f"INSERT INTO {TABLE_NAME} ({', '.join(columns)}) SELECT {select_sql} FROM df_temp"
                )
            finally:
                conn.unregister("df_temp")

            logger.info(f"Loaded {len(incoming)} rows into '{TABLE_NAME}'")
            return Result.success_result(len(incoming))

        except Exception as e:
            error_msg = f"Failed to load DataFrame into {TABLE_NAME}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="load_dataframe", details={"table_name": TABLE_NAME}),
                error_type="StorageError"
            )

    def fetch_admissions(self) -> Result[pd.DataFrame]:
        try:
            failure = self._ensure_schema()
            if failure is not None:
                return failure
            frame = self._get_connection().execute(
                f"SELECT * FROM {TABLE_NAME} ORDER BY patient_id"
            ).df()
            return Result.success_result(frame)
        except Exception as e:
            error_msg = f"Failed to read {TABLE_NAME}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="fetch_admissions"),
                error_type="StorageError"
            )

    def write_enrichment(self, df: pd.DataFrame) -> Result[int]:
        """Persist normalized names and derived columns in one transaction."""
        if df.empty:
            return Result.success_result(0)

        try:
            updates = _to_python_values(df[["patient_id", "name", "length_of_stay", "age_group"]])
        except KeyError as e:
            return Result.failure_result(
                StorageError(f"Enrichment frame is missing column {str(e)}", operation="write_enrichment"),
                error_type="StorageError"
            )

        try:
            conn = self._get_connection()
            conn.begin()
            try:
                conn.register("enrichment_temp", updates)
                row = conn.execute(f"""
                    UPDATE {TABLE_NAME}
                    SET name = CAST(e.name AS VARCHAR),
                        length_of_stay = CAST(e.length_of_stay AS INTEGER),
                        age_group = CAST(e.age_group AS VARCHAR)
                    FROM enrichment_temp e
                    WHERE {TABLE_NAME}.patient_id = CAST(e.patient_id AS INTEGER)
                """).fetchone()
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.unregister("enrichment_temp")

            updated = int(row[0]) if row else len(updates)
            logger.info(f"Wrote enrichment for {updated} rows")
            return Result.success_result(updated)

        except Exception as e:
            error_msg = f"Failed to write enrichment: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="write_enrichment"),
                error_type="StorageError"
            )

    def create_views(self) -> Result[list[str]]:
        try:
            failure = self._ensure_schema()
            if failure is not None:
                return failure
            conn = self._get_connection()
            for view_name, definition in VIEW_DEFINITIONS.items():
                conn.execute(definition)
                logger.debug(f"Created view {view_name}")
            return Result.success_result(list(VIEW_DEFINITIONS))
        except Exception as e:
            error_msg = f"Failed to create views: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="create_views"),
                error_type="StorageError"
            )

    def read_view(self, view_name: str) -> Result[pd.DataFrame]:
        # View names are interpolated into SQL, so only known names pass.
        if view_name not in VIEW_DEFINITIONS:
            return Result.failure_result(
                StorageError(f"View does not exist: {view_name}", operation="read_view"),
                error_type="StorageError",
                error_details={"view_name": view_name}
            )
        try:
            frame = self._get_connection().execute(
                f"SELECT * FROM {view_name} ORDER BY {VIEW_ORDERING[view_name]}"
            ).df()
            return Result.success_result(frame)
        except Exception as e:
            error_msg = f"Failed to read view {view_name}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="read_view"),
                error_type="StorageError",
                error_details={"view_name": view_name}
            )

    def export_projection(self) -> Result[pd.DataFrame]:
        try:
            failure = self._ensure_schema()
            if failure is not None:
                return failure
            return Result.success_result(self._get_connection().execute(EXPORT_QUERY).df())
        except Exception as e:
            error_msg = f"Failed to build export projection: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="export_projection"),
                error_type="StorageError"
            )

    def ping(self) -> Result[None]:
        try:
            self._get_connection().execute("SELECT 1").fetchone()
            return Result.success_result(None)
        except Exception as e:
            return Result.failure_result(
                StorageError(f"DuckDB ping failed: {str(e)}", operation="ping"),
                error_type="StorageError"
            )

    def close(self) -> None:
        """Close storage connection and release resources."""
        if self._connection is not None:
            try:
                self._connection.close()
                self._connection = None
                logger.info("Closed DuckDB connection")
            except Exception as e:
                logger.warning(f"Error closing connection: {str(e)}")
