"""Reporting Query Catalog.

A fixed set of named, parameterless, read-only aggregate queries over the
enriched ``patient_admissions`` table. Every query is a groupby-reduce pass
over one in-memory snapshot of the table and returns a pandas DataFrame
with documented columns.

Queries are independent of each other: none reads another's output and
none mutates the snapshot, so the catalog can run in any order or in
parallel. When run as a batch, a failing query is recorded as a failure
Result and the remaining queries still run.

Rounding follows ``domain.utils``: half-up, 2 places for currency and
percentages, 1 place for day counts and ages. Averages and percentages
over zero rows come back as None rather than raising.

Example Usage:
    ```python
    catalog = ReportingCatalog(store)
    genders = catalog.run("gender_distribution")

    for name, result in catalog.run_all(max_workers=4).items():
        if result.is_failure():
            logger.error(f"{name}: {result.error}")
    ```
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import pandas as pd

from admission_analytics.domain.enums import AGE_GROUP_ORDER, AdmissionType, Gender, TestResult
from admission_analytics.domain.ports import (
    AdmissionStorePort,
    QueryExecutionError,
    Result,
    UnknownReportError,
)
from admission_analytics.domain.services.data_quality import check_data_quality
from admission_analytics.domain.services.views import (
    CONDITION_SUMMARY_COLUMNS,
    MONTHLY_KPIS_COLUMNS,
    build_condition_summary,
    build_monthly_kpis,
    month_key,
    prepare_frame,
)
from admission_analytics.domain.utils import (
    AGE_PLACES,
    CURRENCY_PLACES,
    DAYS_PLACES,
    PERCENT_PLACES,
    percentage,
    percentile_linear,
    round_half_up,
    round_series,
    safe_mean,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Catalog registry
# ============================================================================

@dataclass(frozen=True)
class CatalogConfig:
    """Thresholds used by the outlier and ranking queries."""
    high_cost_percentile: float = 0.90
    top_cases_limit: int = 10
    hospital_min_admissions: int = 5
    hospital_rank_limit: int = 20


@dataclass(frozen=True)
class QueryDefinition:
    """A registered catalog query.

    Attributes:
        name: Stable query name BI tools bind to
        theme: Analytical theme (descriptive, categorical, temporal, ...)
        description: One-line description (first line of the docstring)
        columns: Output columns, in order
        func: Callable taking (prepared frame, CatalogConfig)
    """
    name: str
    theme: str
    description: str
    columns: tuple
    func: Callable[[pd.DataFrame, CatalogConfig], pd.DataFrame] = field(repr=False, compare=False)


QUERY_CATALOG: dict[str, QueryDefinition] = {}

THEMES = ("descriptive", "categorical", "temporal", "crosstab", "ranking", "comparative", "view")


def report(name: str, theme: str, columns: Iterable[str]):
    """Register a query function in QUERY_CATALOG under ``name``."""
    if theme not in THEMES:
        raise ValueError(f"Unknown report theme: {theme}")

    def decorator(func):
        doc = (func.__doc__ or "").strip()
        QUERY_CATALOG[name] = QueryDefinition(
            name=name,
            theme=theme,
            description=doc.splitlines()[0] if doc else name,
            columns=tuple(columns),
            func=func,
        )
        return func
    return decorator


# ============================================================================
# Helpers
# ============================================================================

def _select(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    return df.reindex(columns=list(columns)).reset_index(drop=True)


def _round(df: pd.DataFrame, places: dict) -> pd.DataFrame:
    for column, digits in places.items():
        df[column] = round_series(df[column], digits)
    return df


def _sum(series: pd.Series):
    """SUM semantics: null when every value is null."""
    return series.sum(min_count=1)


def _with_percentage(df: pd.DataFrame, count_column: str, total: int, name: str = "percentage") -> pd.DataFrame:
    df[name] = df[count_column].map(lambda count: percentage(count, total)).astype(object)
    return df


def _dated(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with an admission date, plus integer year/month/quarter keys."""
    dated = df[df["date_of_admission"].notna()]
    admitted = dated["date_of_admission"]
    return dated.assign(
        year=admitted.dt.year.astype(int),
        _month=admitted.dt.month.astype(int),
        quarter=admitted.dt.quarter.astype(int),
    )


def _to_date(value):
    return None if pd.isna(value) else pd.Timestamp(value).date()


# ============================================================================
# Descriptive summary
# ============================================================================

@report(
    "summary_statistics",
    theme="descriptive",
    columns=[
        "total_admissions", "unique_patients", "earliest_admission", "latest_admission",
        "avg_age", "avg_billing", "avg_length_of_stay",
    ],
)
def summary_statistics(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Overall counts, admission date range and headline averages."""
    row = {
        "total_admissions": len(df),
        "unique_patients": int(df["name"].nunique()),
        "earliest_admission": _to_date(df["date_of_admission"].min()),
        "latest_admission": _to_date(df["date_of_admission"].max()),
        "avg_age": round_half_up(safe_mean(df["age"]), AGE_PLACES),
        "avg_billing": round_half_up(safe_mean(df["billing_amount"]), CURRENCY_PLACES),
        "avg_length_of_stay": round_half_up(safe_mean(df["length_of_stay"]), DAYS_PLACES),
    }
    return pd.DataFrame([row], columns=QUERY_CATALOG["summary_statistics"].columns)


@report(
    "data_quality_check",
    theme="descriptive",
    columns=["total_records", "negative_billing", "invalid_age", "date_errors"],
)
def data_quality_check(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Counts of negative billing, impossible ages and inverted stays."""
    return pd.DataFrame([check_data_quality(df).model_dump()], columns=QUERY_CATALOG["data_quality_check"].columns)


# ============================================================================
# Categorical breakdowns
# ============================================================================

@report(
    "gender_distribution",
    theme="categorical",
    columns=["gender", "patient_count", "percentage", "avg_age", "avg_billing"],
)
def gender_distribution(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions per gender with share of total, mean age and mean billing."""
    out = df.groupby("gender", dropna=False).agg(
        patient_count=("patient_id", "size"),
        avg_age=("age", "mean"),
        avg_billing=("billing_amount", "mean"),
    ).reset_index()
    out = out.sort_values(["patient_count", "gender"], ascending=[False, True], kind="mergesort")
    out = _with_percentage(out, "patient_count", len(df))
    out = _round(out, {"avg_age": AGE_PLACES, "avg_billing": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["gender_distribution"].columns)


@report(
    "condition_analysis",
    theme="categorical",
    columns=[
        "medical_condition", "case_count", "percentage", "avg_age", "avg_cost", "avg_los",
        "min_cost", "max_cost",
    ],
)
def condition_analysis(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Cost and stay profile per medical condition, most expensive first."""
    out = df.groupby("medical_condition", dropna=False).agg(
        case_count=("patient_id", "size"),
        avg_age=("age", "mean"),
        avg_cost=("billing_amount", "mean"),
        avg_los=("length_of_stay", "mean"),
        min_cost=("billing_amount", "min"),
        max_cost=("billing_amount", "max"),
    ).reset_index()
    out = out.sort_values(["avg_cost", "medical_condition"], ascending=[False, True], na_position="last", kind="mergesort")
    out = _with_percentage(out, "case_count", len(df))
    out = _round(out, {
        "avg_age": AGE_PLACES,
        "avg_cost": CURRENCY_PLACES,
        "avg_los": DAYS_PLACES,
        "min_cost": CURRENCY_PLACES,
        "max_cost": CURRENCY_PLACES,
    })
    return _select(out, QUERY_CATALOG["condition_analysis"].columns)


@report(
    "admission_type_breakdown",
    theme="categorical",
    columns=["admission_type", "admission_count", "percentage", "avg_billing", "avg_los"],
)
def admission_type_breakdown(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions per admission type with share, mean billing and mean stay."""
    out = df.groupby("admission_type", dropna=False).agg(
        admission_count=("patient_id", "size"),
        avg_billing=("billing_amount", "mean"),
        avg_los=("length_of_stay", "mean"),
    ).reset_index()
    out = out.sort_values(["admission_count", "admission_type"], ascending=[False, True], kind="mergesort")
    out = _with_percentage(out, "admission_count", len(df))
    out = _round(out, {"avg_billing": CURRENCY_PLACES, "avg_los": DAYS_PLACES})
    return _select(out, QUERY_CATALOG["admission_type_breakdown"].columns)


@report(
    "insurance_revenue",
    theme="categorical",
    columns=[
        "insurance_provider", "claim_count", "percentage", "total_revenue", "avg_claim_amount",
        "min_claim", "max_claim",
    ],
)
def insurance_revenue(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Revenue per insurance provider, largest total first."""
    out = df.groupby("insurance_provider", dropna=False).agg(
        claim_count=("patient_id", "size"),
        total_revenue=("billing_amount", _sum),
        avg_claim_amount=("billing_amount", "mean"),
        min_claim=("billing_amount", "min"),
        max_claim=("billing_amount", "max"),
    ).reset_index()
    out = out.sort_values(["total_revenue", "insurance_provider"], ascending=[False, True], na_position="last", kind="mergesort")
    out = _with_percentage(out, "claim_count", len(df))
    out = _round(out, {
        "total_revenue": CURRENCY_PLACES,
        "avg_claim_amount": CURRENCY_PLACES,
        "min_claim": CURRENCY_PLACES,
        "max_claim": CURRENCY_PLACES,
    })
    return _select(out, QUERY_CATALOG["insurance_revenue"].columns)


@report(
    "test_results_distribution",
    theme="categorical",
    columns=["test_results", "result_count", "percentage"],
)
def result_distribution(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Share of each test result outcome."""
    out = df.groupby("test_results", dropna=False).agg(
        result_count=("patient_id", "size"),
    ).reset_index()
    out = out.sort_values(["result_count", "test_results"], ascending=[False, True], kind="mergesort")
    out = _with_percentage(out, "result_count", len(df))
    return _select(out, QUERY_CATALOG["test_results_distribution"].columns)


@report(
    "medication_usage",
    theme="categorical",
    columns=["medication", "prescription_count", "percentage", "avg_cost", "conditions_treated"],
)
def medication_usage(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Prescriptions per medication and how many conditions each treats."""
    out = df.groupby("medication", dropna=False).agg(
        prescription_count=("patient_id", "size"),
        avg_cost=("billing_amount", "mean"),
        conditions_treated=("medical_condition", "nunique"),
    ).reset_index()
    out = out.sort_values(["prescription_count", "medication"], ascending=[False, True], kind="mergesort")
    out = _with_percentage(out, "prescription_count", len(df))
    out = _round(out, {"avg_cost": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["medication_usage"].columns)


@report(
    "age_group_costs",
    theme="categorical",
    columns=["age_group", "patient_count", "percentage", "avg_cost", "total_cost"],
)
def age_group_costs(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Cost per age group, youngest bucket first."""
    out = df.groupby("age_group", dropna=False).agg(
        patient_count=("patient_id", "size"),
        avg_cost=("billing_amount", "mean"),
        total_cost=("billing_amount", _sum),
    ).reset_index()
    order = {label: position for position, label in enumerate(AGE_GROUP_ORDER)}
    out["_order"] = out["age_group"].map(lambda label: order.get(label, len(order)))
    out = out.sort_values("_order", kind="mergesort")
    out = _with_percentage(out, "patient_count", len(df))
    out = _round(out, {"avg_cost": CURRENCY_PLACES, "total_cost": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["age_group_costs"].columns)


# ============================================================================
# Temporal breakdowns
# ============================================================================

@report(
    "monthly_trends",
    theme="temporal",
    columns=["admission_month", "admissions", "avg_billing"],
)
def monthly_trends(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions and mean billing per calendar month."""
    dated = _dated(df)
    dated = dated.assign(admission_month=month_key(dated["date_of_admission"]))
    out = dated.groupby(["year", "_month", "admission_month"], sort=True).agg(
        admissions=("patient_id", "size"),
        avg_billing=("billing_amount", "mean"),
    ).reset_index()
    out = _round(out, {"avg_billing": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["monthly_trends"].columns)


@report(
    "quarterly_trends",
    theme="temporal",
    columns=["year", "quarter", "admissions", "avg_billing"],
)
def quarterly_trends(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Seasonal pattern: admissions and mean billing per year and quarter."""
    out = _dated(df).groupby(["year", "quarter"], sort=True).agg(
        admissions=("patient_id", "size"),
        avg_billing=("billing_amount", "mean"),
    ).reset_index()
    out = _round(out, {"avg_billing": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["quarterly_trends"].columns)


@report(
    "day_of_week_analysis",
    theme="temporal",
    columns=["day_of_week", "admissions", "avg_billing"],
)
def day_of_week_analysis(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions and mean billing per weekday, busiest first."""
    dated = _dated(df)
    admitted = dated["date_of_admission"]
    dated = dated.assign(day_of_week=admitted.dt.day_name(), _weekday=admitted.dt.weekday)
    out = dated.groupby(["_weekday", "day_of_week"]).agg(
        admissions=("patient_id", "size"),
        avg_billing=("billing_amount", "mean"),
    ).reset_index()
    out = out.sort_values(["admissions", "_weekday"], ascending=[False, True], kind="mergesort")
    out = _round(out, {"avg_billing": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["day_of_week_analysis"].columns)


def _yearly(df: pd.DataFrame) -> pd.DataFrame:
    return _dated(df).groupby("year", sort=True).agg(
        total_admissions=("patient_id", "size"),
        total_revenue=("billing_amount", _sum),
        avg_billing_per_admission=("billing_amount", "mean"),
    ).reset_index()


@report(
    "yearly_comparison",
    theme="temporal",
    columns=["year", "total_admissions", "total_revenue", "avg_billing_per_admission"],
)
def yearly_comparison(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions, revenue and mean billing per calendar year."""
    out = _round(_yearly(df), {
        "total_revenue": CURRENCY_PLACES,
        "avg_billing_per_admission": CURRENCY_PLACES,
    })
    return _select(out, QUERY_CATALOG["yearly_comparison"].columns)


@report(
    "year_over_year_growth",
    theme="temporal",
    columns=["year", "total_admissions", "total_revenue", "admissions_change_pct", "revenue_change_pct"],
)
def year_over_year_growth(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Change in admissions and revenue against the previous year on record.

    The first year has no previous year and reports None for both changes,
    as does any year whose previous value is zero or missing.
    """
    out = _yearly(df)

    def change(current: pd.Series) -> list:
        previous = current.shift(1)
        changes = []
        for now, before in zip(current, previous):
            if pd.isna(before) or pd.isna(now) or before == 0:
                changes.append(None)
            else:
                changes.append(round_half_up((now - before) * 100.0 / before, PERCENT_PLACES))
        return changes

    out["admissions_change_pct"] = change(out["total_admissions"])
    out["revenue_change_pct"] = change(out["total_revenue"])
    out = _round(out, {"total_revenue": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["year_over_year_growth"].columns)


@report(
    "cumulative_monthly_admissions",
    theme="temporal",
    columns=["month", "monthly_admissions", "cumulative_admissions"],
)
def cumulative_monthly_admissions(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Monthly admissions with a running total in calendar order."""
    dated = _dated(df)
    dated = dated.assign(month=month_key(dated["date_of_admission"]))
    # Integer (year, month) keys keep the running total chronological.
    out = dated.groupby(["year", "_month", "month"], sort=True).agg(
        monthly_admissions=("patient_id", "size"),
    ).reset_index()
    out["cumulative_admissions"] = out["monthly_admissions"].cumsum()
    return _select(out, QUERY_CATALOG["cumulative_monthly_admissions"].columns)


# ============================================================================
# Cross-tabulations
# ============================================================================

@report(
    "condition_by_admission_type",
    theme="crosstab",
    columns=["medical_condition", "admission_type", "cases", "avg_cost", "total_cost"],
)
def condition_by_admission_type(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Cases and cost for each medical condition and admission type pair."""
    out = df.groupby(["medical_condition", "admission_type"], dropna=False).agg(
        cases=("patient_id", "size"),
        avg_cost=("billing_amount", "mean"),
        total_cost=("billing_amount", _sum),
    ).reset_index()
    out = out.sort_values(
        ["medical_condition", "avg_cost", "admission_type"],
        ascending=[True, False, True],
        na_position="last",
        kind="mergesort",
    )
    out = _round(out, {"avg_cost": CURRENCY_PLACES, "total_cost": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["condition_by_admission_type"].columns)


@report(
    "stay_by_condition_and_type",
    theme="crosstab",
    columns=["medical_condition", "admission_type", "cases", "avg_los", "min_los", "max_los"],
)
def stay_by_condition_and_type(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Length-of-stay profile per condition and admission type, longest first."""
    out = df.groupby(["medical_condition", "admission_type"], dropna=False).agg(
        cases=("patient_id", "size"),
        avg_los=("length_of_stay", "mean"),
        min_los=("length_of_stay", "min"),
        max_los=("length_of_stay", "max"),
    ).reset_index()
    out = out.sort_values(
        ["avg_los", "medical_condition", "admission_type"],
        ascending=[False, True, True],
        na_position="last",
        kind="mergesort",
    )
    out["min_los"] = out["min_los"].astype("Int64")
    out["max_los"] = out["max_los"].astype("Int64")
    out = _round(out, {"avg_los": DAYS_PLACES})
    return _select(out, QUERY_CATALOG["stay_by_condition_and_type"].columns)


@report(
    "test_results_by_condition",
    theme="crosstab",
    columns=["medical_condition", "test_results", "case_count", "pct_within_condition"],
)
def results_by_condition(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Test result mix per condition; percentages sum to 100 within each condition."""
    out = df.groupby(["medical_condition", "test_results"], dropna=False).agg(
        case_count=("patient_id", "size"),
    ).reset_index()
    condition_totals = out.groupby("medical_condition", dropna=False)["case_count"].transform("sum")
    out["pct_within_condition"] = [
        percentage(count, total) for count, total in zip(out["case_count"], condition_totals)
    ]
    out = out.sort_values(
        ["medical_condition", "case_count", "test_results"],
        ascending=[True, False, True],
        kind="mergesort",
    )
    return _select(out, QUERY_CATALOG["test_results_by_condition"].columns)


@report(
    "abnormal_results_by_condition",
    theme="crosstab",
    columns=["medical_condition", "total_cases", "abnormal_count", "abnormal_percentage"],
)
def abnormal_results_by_condition(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Share of abnormal test results per condition, highest first."""
    flagged = df.assign(_abnormal=(df["test_results"] == TestResult.ABNORMAL.value).astype(int))
    out = flagged.groupby("medical_condition", dropna=False).agg(
        total_cases=("patient_id", "size"),
        abnormal_count=("_abnormal", "sum"),
    ).reset_index()
    out["abnormal_percentage"] = [
        percentage(abnormal, total) for abnormal, total in zip(out["abnormal_count"], out["total_cases"])
    ]
    out["_sort"] = out["abnormal_percentage"].astype(float)
    out = out.sort_values(["_sort", "medical_condition"], ascending=[False, True], na_position="last", kind="mergesort")
    return _select(out, QUERY_CATALOG["abnormal_results_by_condition"].columns)


@report(
    "gender_by_condition",
    theme="crosstab",
    columns=["medical_condition", "male_count", "female_count", "male_avg_cost", "female_avg_cost"],
)
def gender_by_condition(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Male and female case counts and mean costs per condition."""
    rows = []
    for condition, group in df.groupby("medical_condition", dropna=False, sort=True):
        male = group[group["gender"] == Gender.MALE.value]
        female = group[group["gender"] == Gender.FEMALE.value]
        rows.append({
            "medical_condition": condition,
            "male_count": len(male),
            "female_count": len(female),
            "male_avg_cost": round_half_up(safe_mean(male["billing_amount"]), CURRENCY_PLACES),
            "female_avg_cost": round_half_up(safe_mean(female["billing_amount"]), CURRENCY_PLACES),
        })
    return pd.DataFrame(rows, columns=QUERY_CATALOG["gender_by_condition"].columns)


@report(
    "cohort_by_year_condition",
    theme="crosstab",
    columns=["admission_year", "medical_condition", "patient_count", "avg_cost"],
)
def cohort_by_year_condition(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Admissions and mean cost per admission year and condition."""
    dated = _dated(df).rename(columns={"year": "admission_year"})
    out = dated.groupby(["admission_year", "medical_condition"], dropna=False).agg(
        patient_count=("patient_id", "size"),
        avg_cost=("billing_amount", "mean"),
    ).reset_index()
    out = out.sort_values(
        ["admission_year", "patient_count", "medical_condition"],
        ascending=[True, False, True],
        kind="mergesort",
    )
    out = _round(out, {"avg_cost": CURRENCY_PLACES})
    return _select(out, QUERY_CATALOG["cohort_by_year_condition"].columns)


# ============================================================================
# Outliers and rankings
# ============================================================================

@report(
    "high_cost_cases",
    theme="ranking",
    columns=["name", "age", "medical_condition", "admission_type", "billing_amount", "length_of_stay"],
)
def high_cost_cases(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Cases billed at or above the 90th percentile of billing_amount.

    The percentile is taken over the whole population with linear
    interpolation between closest ranks.
    """
    threshold = percentile_linear(df["billing_amount"], config.high_cost_percentile)
    columns = QUERY_CATALOG["high_cost_cases"].columns
    if threshold is None:
        return pd.DataFrame(columns=columns)

    out = df[df["billing_amount"] >= threshold]
    out = out.sort_values(["billing_amount", "patient_id"], ascending=[False, True], kind="mergesort")
    out = out.assign(length_of_stay=out["length_of_stay"].astype("Int64"))
    return _select(out, columns)


@report(
    "top_expensive_cases",
    theme="ranking",
    columns=[
        "name", "age", "gender", "medical_condition", "admission_type", "billing_amount",
        "length_of_stay", "insurance_provider",
    ],
)
def top_expensive_cases(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """The ten most expensive admissions."""
    out = df.sort_values(["billing_amount", "patient_id"], ascending=[False, True], na_position="last", kind="mergesort")
    out = out.head(config.top_cases_limit)
    out = out.assign(length_of_stay=out["length_of_stay"].astype("Int64"))
    return _select(out, QUERY_CATALOG["top_expensive_cases"].columns)


@report(
    "hospital_cost_ranking",
    theme="ranking",
    columns=["hospital", "patient_count", "avg_billing", "cost_rank"],
)
def hospital_cost_ranking(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Hospitals with at least five admissions, dense-ranked by mean billing.

    Ties are decided on the rounded mean: hospitals whose means round to the
    same cent share a rank, and the next distinct mean takes the next rank.
    Only the top twenty rows are returned.
    """
    out = df.groupby("hospital", dropna=False).agg(
        patient_count=("patient_id", "size"),
        avg_billing=("billing_amount", "mean"),
    ).reset_index()
    out = out[out["patient_count"] >= config.hospital_min_admissions].copy()

    out["avg_billing"] = round_series(out["avg_billing"], CURRENCY_PLACES)
    rounded = out["avg_billing"].astype(float)
    out["cost_rank"] = rounded.rank(method="dense", ascending=False).astype("Int64")
    out["_sort"] = rounded
    out = out.sort_values(["_sort", "hospital"], ascending=[False, True], na_position="last", kind="mergesort")
    out = out.head(config.hospital_rank_limit)
    return _select(out, QUERY_CATALOG["hospital_cost_ranking"].columns)


# ============================================================================
# Comparative aggregates
# ============================================================================

@report(
    "emergency_vs_elective",
    theme="comparative",
    columns=["category", "total_cases", "avg_cost", "avg_los"],
)
def emergency_vs_elective(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Emergency and Elective admissions side by side (always two rows)."""
    rows = []
    for category in (AdmissionType.EMERGENCY.value, AdmissionType.ELECTIVE.value):
        subset = df[df["admission_type"] == category]
        rows.append({
            "category": category,
            "total_cases": len(subset),
            "avg_cost": round_half_up(safe_mean(subset["billing_amount"]), CURRENCY_PLACES),
            "avg_los": round_half_up(safe_mean(subset["length_of_stay"]), DAYS_PLACES),
        })
    return pd.DataFrame(rows, columns=QUERY_CATALOG["emergency_vs_elective"].columns)


# ============================================================================
# View mirrors
# ============================================================================

@report("monthly_kpis", theme="view", columns=MONTHLY_KPIS_COLUMNS)
def monthly_kpis(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Monthly KPI rollup (same rows as the monthly_kpis view)."""
    return build_monthly_kpis(df)


@report("condition_summary", theme="view", columns=CONDITION_SUMMARY_COLUMNS)
def condition_summary(df: pd.DataFrame, config: CatalogConfig) -> pd.DataFrame:
    """Per-condition rollup (same rows as the condition_summary view)."""
    return build_condition_summary(df)


# ============================================================================
# Catalog
# ============================================================================

class ReportingCatalog:
    """Runs catalog queries against an injected admissions store.

    Parameters:
        store: Store holding the enriched ``patient_admissions`` table
        config: Thresholds for the outlier and ranking queries
    """

    def __init__(self, store: AdmissionStorePort, config: Optional[CatalogConfig] = None):
        self.store = store
        self.config = config or CatalogConfig()

    @staticmethod
    def list_queries(theme: Optional[str] = None) -> list[QueryDefinition]:
        """Registered queries in registration order, optionally for one theme."""
        return [
            definition for definition in QUERY_CATALOG.values()
            if theme is None or definition.theme == theme
        ]

    @staticmethod
    def get_definition(name: str) -> QueryDefinition:
        """Look up a query definition.

        Raises:
            UnknownReportError: If no query has that name
        """
        try:
            return QUERY_CATALOG[name]
        except KeyError:
            raise UnknownReportError(f"Unknown report: {name}", query_name=name)

    def load_snapshot(self) -> pd.DataFrame:
        """Fetch the admissions table once and prepare it for querying.

        Raises:
            QueryExecutionError: If the store cannot return the table
        """
        result = self.store.fetch_admissions()
        if result.is_failure():
            raise QueryExecutionError(f"Could not read admissions: {result.error}")
        return prepare_frame(result.value)

    def run(self, name: str, snapshot: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Run one query and return its frame.

        Parameters:
            name: Registered query name
            snapshot: Prepared table snapshot; fetched from the store if omitted

        Raises:
            UnknownReportError: If no query has that name
            QueryExecutionError: If the query fails
        """
        definition = self.get_definition(name)
        if snapshot is None:
            snapshot = self.load_snapshot()

        try:
            frame = definition.func(snapshot, self.config)
        except Exception as e:
            raise QueryExecutionError(f"Query '{name}' failed: {str(e)}", query_name=name) from e

        logger.debug(f"Query '{name}' returned {len(frame)} rows")
        return frame

    def execute(self, name: str, snapshot: Optional[pd.DataFrame] = None) -> Result[pd.DataFrame]:
        """Run one query, reporting failure as a Result instead of raising."""
        try:
            return Result.success_result(self.run(name, snapshot))
        except QueryExecutionError as e:
            logger.error(f"Report '{name}' failed: {str(e)}", exc_info=True)
            return Result.failure_result(e, error_details={"query_name": name})

    def run_all(
        self,
        names: Optional[Iterable[str]] = None,
        max_workers: int = 1
    ) -> dict[str, Result[pd.DataFrame]]:
        """Run many queries over one snapshot of the table.

        A failure in one query is captured in its Result and never stops
        the others. If the snapshot itself cannot be read, every query
        reports that failure.

        Parameters:
            names: Query names to run (default: the whole catalog)
            max_workers: Thread pool size; 1 runs sequentially

        Returns:
            Mapping of query name to Result, in request order
        """
        selected = list(names) if names is not None else list(QUERY_CATALOG)

        try:
            snapshot = self.load_snapshot()
        except QueryExecutionError as e:
            logger.error(f"Report batch aborted before start: {str(e)}")
            return {
                name: Result.failure_result(e, error_details={"query_name": name})
                for name in selected
            }

        if max_workers <= 1:
            results = {name: self.execute(name, snapshot) for name in selected}
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {name: executor.submit(self.execute, name, snapshot) for name in selected}
                results = {name: future.result() for name, future in futures.items()}

        failures = [name for name, result in results.items() if result.is_failure()]
        logger.info(
            f"Ran {len(results)} reports: {len(results) - len(failures)} succeeded, {len(failures)} failed"
        )
        return results
