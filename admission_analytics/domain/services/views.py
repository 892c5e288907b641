"""Summary views and export projection computed in memory.

These builders define the same frames the DuckDB store exposes through
``CREATE VIEW`` and its export query. The in-memory store serves them
directly and the reporting catalog registers the two views as queries.
"""

import pandas as pd

from admission_analytics.domain.admission_record import EXPORT_COLUMNS, TABLE_COLUMNS
from admission_analytics.domain.enums import AdmissionType, TestResult
from admission_analytics.domain.utils import (
    AGE_PLACES,
    CURRENCY_PLACES,
    DAYS_PLACES,
    round_series,
)

MONTHLY_KPIS_COLUMNS = [
    "month",
    "total_admissions",
    "emergency_count",
    "avg_revenue",
    "total_revenue",
    "avg_los",
]

CONDITION_SUMMARY_COLUMNS = [
    "medical_condition",
    "total_cases",
    "avg_patient_age",
    "avg_cost",
    "avg_los",
    "abnormal_results",
    "emergency_admissions",
]


def prepare_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """Copy a table frame and coerce dates and numeric columns.

    Stores return dates as ``datetime64`` and DECIMAL as float already; frames
    built by hand may carry strings or ``date`` objects instead.
    """
    df = frame.copy()
    for column in TABLE_COLUMNS:
        if column not in df.columns:
            df[column] = None
    df["date_of_admission"] = pd.to_datetime(df["date_of_admission"], errors="coerce", format="mixed")
    df["discharge_date"] = pd.to_datetime(df["discharge_date"], errors="coerce", format="mixed")
    for column in ("age", "billing_amount", "length_of_stay", "room_number"):
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df


def month_key(admitted: pd.Series) -> pd.Series:
    """``YYYY-MM`` label for each admission date."""
    return admitted.dt.strftime("%Y-%m")


def build_monthly_kpis(frame: pd.DataFrame) -> pd.DataFrame:
    """Monthly KPI rollup, one row per admission month in calendar order."""
    df = prepare_frame(frame)
    df = df[df["date_of_admission"].notna()]
    df = df.assign(
        _year=df["date_of_admission"].dt.year,
        _month=df["date_of_admission"].dt.month,
        _emergency=(df["admission_type"] == AdmissionType.EMERGENCY.value).astype(int),
    )

    out = df.groupby(["_year", "_month"], sort=True).agg(
        total_admissions=("patient_id", "size"),
        emergency_count=("_emergency", "sum"),
        avg_revenue=("billing_amount", "mean"),
        total_revenue=("billing_amount", lambda s: s.sum(min_count=1)),
        avg_los=("length_of_stay", "mean"),
    ).reset_index()

    out["month"] = [f"{int(y):04d}-{int(m):02d}" for y, m in zip(out["_year"], out["_month"])]
    out["avg_revenue"] = round_series(out["avg_revenue"], CURRENCY_PLACES)
    out["total_revenue"] = round_series(out["total_revenue"], CURRENCY_PLACES)
    out["avg_los"] = round_series(out["avg_los"], DAYS_PLACES)
    return out.reindex(columns=MONTHLY_KPIS_COLUMNS).reset_index(drop=True)


def build_condition_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """Per-condition rollup ordered by condition name."""
    df = prepare_frame(frame)
    df = df.assign(
        _abnormal=(df["test_results"] == TestResult.ABNORMAL.value).astype(int),
        _emergency=(df["admission_type"] == AdmissionType.EMERGENCY.value).astype(int),
    )

    out = df.groupby("medical_condition", dropna=False, sort=True).agg(
        total_cases=("patient_id", "size"),
        avg_patient_age=("age", "mean"),
        avg_cost=("billing_amount", "mean"),
        avg_los=("length_of_stay", "mean"),
        abnormal_results=("_abnormal", "sum"),
        emergency_admissions=("_emergency", "sum"),
    ).reset_index()

    out["avg_patient_age"] = round_series(out["avg_patient_age"], AGE_PLACES)
    out["avg_cost"] = round_series(out["avg_cost"], CURRENCY_PLACES)
    out["avg_los"] = round_series(out["avg_los"], DAYS_PLACES)
    return out.reindex(columns=CONDITION_SUMMARY_COLUMNS).reset_index(drop=True)


def build_export_projection(frame: pd.DataFrame) -> pd.DataFrame:
    """Every table column plus calendar columns, ordered by admission date.

    ``admission_year`` and ``admission_month`` are zero-padded text,
    ``admission_quarter`` is an integer and ``admission_day`` the English
    weekday name.
    """
    df = prepare_frame(frame)
    admitted = df["date_of_admission"]
    df["admission_year"] = admitted.dt.strftime("%Y")
    df["admission_month"] = admitted.dt.strftime("%m")
    df["admission_quarter"] = admitted.dt.quarter.astype("Int64")
    df["admission_day"] = admitted.dt.day_name()
    df = df.sort_values(["date_of_admission", "patient_id"], na_position="last", kind="mergesort")
    return df.reindex(columns=EXPORT_COLUMNS).reset_index(drop=True)
