"""Tests for the reporting query catalog.

Expected values are worked out by hand from the five sample admissions in
tests.factories.
"""

import pandas as pd
import pytest

from admission_analytics.adapters.storage import InMemoryAdmissionStore
from admission_analytics.domain.ports import QueryExecutionError, Result, UnknownReportError
from admission_analytics.domain.services.reporting import (
    QUERY_CATALOG,
    THEMES,
    CatalogConfig,
    ReportingCatalog,
    report,
)

from tests.factories import SAMPLE_ROWS, admission, make_admissions


@pytest.fixture
def catalog(enriched_frame):
    return ReportingCatalog(InMemoryAdmissionStore(enriched_frame))


def rows(frame: pd.DataFrame) -> list[dict]:
    return frame.to_dict(orient="records")


class TestCatalogRegistry:
    """The registered query set."""

    def test_every_query_is_registered_once(self):
        expected = {
            "summary_statistics", "data_quality_check", "gender_distribution", "condition_analysis",
            "admission_type_breakdown", "insurance_revenue", "test_results_distribution",
            "medication_usage", "age_group_costs", "monthly_trends", "quarterly_trends",
            "day_of_week_analysis", "yearly_comparison", "year_over_year_growth",
            "cumulative_monthly_admissions", "condition_by_admission_type",
            "stay_by_condition_and_type", "test_results_by_condition", "abnormal_results_by_condition",
            "gender_by_condition", "cohort_by_year_condition", "high_cost_cases", "top_expensive_cases",
            "hospital_cost_ranking", "emergency_vs_elective", "monthly_kpis", "condition_summary",
        }
        assert set(QUERY_CATALOG) == expected

    def test_every_query_has_a_known_theme_and_description(self):
        for definition in QUERY_CATALOG.values():
            assert definition.theme in THEMES
            assert definition.description

    def test_list_queries_by_theme(self):
        names = [definition.name for definition in ReportingCatalog.list_queries("view")]
        assert names == ["monthly_kpis", "condition_summary"]

    def test_unknown_theme_is_rejected_at_registration(self):
        with pytest.raises(ValueError):
            report("bogus", theme="nonsense", columns=[])

    def test_unknown_report_raises(self, catalog):
        with pytest.raises(UnknownReportError):
            catalog.run("does_not_exist")

    def test_every_query_returns_its_documented_columns(self, catalog):
        snapshot = catalog.load_snapshot()
        for name, definition in QUERY_CATALOG.items():
            frame = catalog.run(name, snapshot)
            assert list(frame.columns) == list(definition.columns), name

    def test_every_query_handles_an_empty_table(self):
        empty = ReportingCatalog(InMemoryAdmissionStore())
        results = empty.run_all()
        failures = {name: result.error for name, result in results.items() if result.is_failure()}
        assert failures == {}
        assert results["data_quality_check"].value.iloc[0].to_dict() == {
            "total_records": 0, "negative_billing": 0, "invalid_age": 0, "date_errors": 0,
        }


class TestDescriptiveQueries:

    def test_summary_statistics(self, catalog):
        row = rows(catalog.run("summary_statistics"))[0]
        assert row["total_admissions"] == 5
        assert row["unique_patients"] == 5
        assert str(row["earliest_admission"]) == "2024-01-01"
        assert str(row["latest_admission"]) == "2025-03-05"
        assert row["avg_age"] == 45.0
        assert row["avg_billing"] == 330.0
        assert row["avg_length_of_stay"] == 5.4

    def test_data_quality_check_counts_defects(self):
        frame = make_admissions(SAMPLE_ROWS)
        frame.loc[0, "billing_amount"] = -5.0
        result = ReportingCatalog(InMemoryAdmissionStore(frame)).run("data_quality_check")
        assert result["negative_billing"].iloc[0] == 1
        assert result["total_records"].iloc[0] == 5


class TestCategoricalQueries:

    def test_gender_distribution(self, catalog):
        assert rows(catalog.run("gender_distribution")) == [
            {"gender": "Male", "patient_count": 3, "percentage": 60.0, "avg_age": 56.7, "avg_billing": 466.67},
            {"gender": "Female", "patient_count": 2, "percentage": 40.0, "avg_age": 27.5, "avg_billing": 125.0},
        ]

    def test_condition_analysis_diabetes_example(self, catalog):
        result = catalog.run("condition_analysis").set_index("medical_condition")
        diabetes = result.loc["Diabetes"]
        assert diabetes["case_count"] == 3
        assert diabetes["avg_cost"] == 200.0
        assert diabetes["min_cost"] == 100.0
        assert diabetes["max_cost"] == 300.0
        assert diabetes["avg_los"] == 5.0
        # most expensive condition first
        assert list(result.index) == ["Asthma", "Diabetes"]

    @pytest.mark.parametrize("name", [
        "gender_distribution",
        "condition_analysis",
        "admission_type_breakdown",
        "insurance_revenue",
        "test_results_distribution",
        "medication_usage",
        "age_group_costs",
    ])
    def test_percentages_sum_to_one_hundred(self, catalog, name):
        frame = catalog.run(name)
        total = sum(frame["percentage"])
        assert abs(total - 100.0) <= 0.01 * len(frame)

    def test_percentages_with_thirds(self):
        frame = make_admissions(SAMPLE_ROWS[:3])
        result = ReportingCatalog(InMemoryAdmissionStore(frame)).run("admission_type_breakdown")
        assert rows(result)[0]["percentage"] == 66.67
        assert rows(result)[1]["percentage"] == 33.33

    def test_insurance_revenue(self, catalog):
        result = rows(catalog.run("insurance_revenue"))
        assert [row["insurance_provider"] for row in result] == ["Medicare", "Cigna", "Aetna"]
        assert result[1]["total_revenue"] == 350.0
        assert result[2]["avg_claim_amount"] == 150.0

    def test_medication_usage_counts_conditions(self, catalog):
        result = catalog.run("medication_usage").set_index("medication")
        assert result.loc["Metformin", "prescription_count"] == 2
        assert result.loc["Albuterol", "conditions_treated"] == 1

    def test_age_group_costs_follow_bucket_order(self, catalog):
        result = catalog.run("age_group_costs")
        assert result["age_group"].tolist() == [
            "Minor (0-17)",
            "Young Adult (18-35)",
            "Middle Age (36-55)",
            "Senior (56-70)",
            "Elderly (70+)",
        ]
        assert result["total_cost"].tolist() == [50.0, 100.0, 200.0, 300.0, 1000.0]


class TestTemporalQueries:

    def test_monthly_trends(self, catalog):
        assert rows(catalog.run("monthly_trends")) == [
            {"admission_month": "2024-01", "admissions": 2, "avg_billing": 150.0},
            {"admission_month": "2024-02", "admissions": 2, "avg_billing": 175.0},
            {"admission_month": "2025-03", "admissions": 1, "avg_billing": 1000.0},
        ]

    def test_quarterly_trends(self, catalog):
        result = rows(catalog.run("quarterly_trends"))
        assert [(row["year"], row["quarter"], row["admissions"]) for row in result] == [(2024, 1, 4), (2025, 1, 1)]

    def test_day_of_week_analysis(self, catalog):
        result = catalog.run("day_of_week_analysis")
        assert result["admissions"].sum() == 5
        # 2024-01-01 and 2024-01-15 were both Mondays
        assert rows(result)[0]["day_of_week"] == "Monday"
        assert rows(result)[0]["admissions"] == 2

    def test_yearly_comparison(self, catalog):
        assert rows(catalog.run("yearly_comparison")) == [
            {"year": 2024, "total_admissions": 4, "total_revenue": 650.0, "avg_billing_per_admission": 162.5},
            {"year": 2025, "total_admissions": 1, "total_revenue": 1000.0, "avg_billing_per_admission": 1000.0},
        ]

    def test_year_over_year_growth(self, catalog):
        first, second = rows(catalog.run("year_over_year_growth"))
        assert pd.isna(first["admissions_change_pct"])
        assert pd.isna(first["revenue_change_pct"])
        assert second["admissions_change_pct"] == -75.0
        assert second["revenue_change_pct"] == 53.85

    def test_cumulative_admissions_are_a_running_total(self, catalog):
        result = catalog.run("cumulative_monthly_admissions")
        assert result["month"].tolist() == ["2024-01", "2024-02", "2025-03"]
        assert result["cumulative_admissions"].tolist() == [2, 4, 5]
        assert result["cumulative_admissions"].tolist() == result["monthly_admissions"].cumsum().tolist()

    def test_rows_without_admission_date_are_excluded(self):
        frame = make_admissions(SAMPLE_ROWS)
        frame.loc[4, "date_of_admission"] = pd.NaT
        result = ReportingCatalog(InMemoryAdmissionStore(frame)).run("cumulative_monthly_admissions")
        assert result["cumulative_admissions"].tolist() == [2, 4]


class TestCrossTabQueries:

    def test_test_results_by_condition_sum_to_one_hundred_per_condition(self, catalog):
        result = catalog.run("test_results_by_condition")
        for condition, group in result.groupby("medical_condition"):
            assert abs(sum(group["pct_within_condition"]) - 100.0) <= 0.01 * len(group), condition

        diabetes = result[result["medical_condition"] == "Diabetes"]
        assert rows(diabetes)[0]["test_results"] == "Normal"
        assert rows(diabetes)[0]["pct_within_condition"] == 66.67

    def test_abnormal_results_by_condition(self, catalog):
        assert rows(catalog.run("abnormal_results_by_condition")) == [
            {"medical_condition": "Asthma", "total_cases": 2, "abnormal_count": 1, "abnormal_percentage": 50.0},
            {"medical_condition": "Diabetes", "total_cases": 3, "abnormal_count": 1, "abnormal_percentage": 33.33},
        ]

    def test_gender_by_condition(self, catalog):
        result = catalog.run("gender_by_condition").set_index("medical_condition")
        assert result.loc["Diabetes", "male_count"] == 2
        assert result.loc["Diabetes", "female_count"] == 1
        assert result.loc["Diabetes", "male_avg_cost"] == 200.0
        assert result.loc["Asthma", "female_avg_cost"] == 50.0

    def test_condition_by_admission_type(self, catalog):
        result = catalog.run("condition_by_admission_type")
        diabetes_emergency = result[
            (result["medical_condition"] == "Diabetes") & (result["admission_type"] == "Emergency")
        ]
        assert rows(diabetes_emergency) == [{
            "medical_condition": "Diabetes",
            "admission_type": "Emergency",
            "cases": 2,
            "avg_cost": 200.0,
            "total_cost": 400.0,
        }]

    def test_stay_by_condition_and_type_longest_first(self, catalog):
        result = rows(catalog.run("stay_by_condition_and_type"))
        assert result[0]["medical_condition"] == "Asthma"
        assert result[0]["admission_type"] == "Elective"
        assert result[0]["avg_los"] == 10.0

    def test_cohort_by_year_condition(self, catalog):
        result = rows(catalog.run("cohort_by_year_condition"))
        assert [(row["admission_year"], row["medical_condition"], row["patient_count"]) for row in result] == [
            (2024, "Diabetes", 3),
            (2024, "Asthma", 1),
            (2025, "Asthma", 1),
        ]


class TestRankingQueries:

    def test_high_cost_cases_use_the_ninetieth_percentile(self, catalog):
        # threshold = 720.0 by linear interpolation
        result = catalog.run("high_cost_cases")
        assert result["name"].tolist() == ["Carl White"]

    def test_high_cost_threshold_is_configurable(self, enriched_frame):
        catalog = ReportingCatalog(InMemoryAdmissionStore(enriched_frame), CatalogConfig(high_cost_percentile=0.5))
        assert catalog.run("high_cost_cases")["billing_amount"].tolist() == [1000.0, 300.0, 200.0]

    def test_top_expensive_cases(self, enriched_frame):
        catalog = ReportingCatalog(InMemoryAdmissionStore(enriched_frame), CatalogConfig(top_cases_limit=2))
        result = catalog.run("top_expensive_cases")
        assert result["billing_amount"].tolist() == [1000.0, 300.0]

    def test_hospital_cost_ranking(self):
        billing = {
            "Alpha": [100.0] * 5,
            "Beta": [100.004, 100.0, 100.0, 100.0, 100.0],
            "Gamma": [500.0] * 6,
            "Delta": [50.0] * 4,
        }
        frame = pd.DataFrame([
            admission(hospital=hospital, billing_amount=amount)
            for hospital, amounts in billing.items()
            for amount in amounts
        ])
        result = ReportingCatalog(InMemoryAdmissionStore(frame)).run("hospital_cost_ranking")

        # Delta has fewer than five admissions; Alpha and Beta round to the same mean
        assert rows(result) == [
            {"hospital": "Gamma", "patient_count": 6, "avg_billing": 500.0, "cost_rank": 1},
            {"hospital": "Alpha", "patient_count": 5, "avg_billing": 100.0, "cost_rank": 2},
            {"hospital": "Beta", "patient_count": 5, "avg_billing": 100.0, "cost_rank": 2},
        ]

    def test_hospital_ranking_is_dense_and_limited(self):
        frame = pd.DataFrame([
            admission(hospital=f"H{index:02d}", billing_amount=float(1000 - index))
            for index in range(25)
            for _ in range(5)
        ])
        result = ReportingCatalog(InMemoryAdmissionStore(frame)).run("hospital_cost_ranking")

        assert len(result) == 20
        assert (result["patient_count"] >= 5).all()
        assert result["cost_rank"].tolist() == list(range(1, 21))


class TestComparativeQueries:

    def test_emergency_vs_elective(self, catalog):
        assert rows(catalog.run("emergency_vs_elective")) == [
            {"category": "Emergency", "total_cases": 2, "avg_cost": 200.0, "avg_los": 5.0},
            {"category": "Elective", "total_cases": 2, "avg_cost": 600.0, "avg_los": 7.5},
        ]

    def test_emergency_vs_elective_always_has_two_rows(self):
        frame = make_admissions([SAMPLE_ROWS[3]])
        result = rows(ReportingCatalog(InMemoryAdmissionStore(frame)).run("emergency_vs_elective"))
        assert [row["category"] for row in result] == ["Emergency", "Elective"]
        assert result[0]["total_cases"] == 0
        assert result[0]["avg_cost"] is None


class TestBatchExecution:
    """run_all isolates failures."""

    def test_runs_the_whole_catalog(self, catalog):
        results = catalog.run_all()
        assert set(results) == set(QUERY_CATALOG)
        assert all(result.is_success() for result in results.values())

    def test_parallel_matches_sequential(self, catalog):
        sequential = catalog.run_all()
        parallel = catalog.run_all(max_workers=4)
        for name, result in sequential.items():
            pd.testing.assert_frame_equal(result.value, parallel[name].value)

    def test_one_failing_query_does_not_stop_the_others(self, catalog, monkeypatch):
        definition = QUERY_CATALOG["gender_distribution"]

        def broken(df, config):
            raise ZeroDivisionError("boom")

        monkeypatch.setitem(QUERY_CATALOG, "gender_distribution", definition.__class__(
            name=definition.name,
            theme=definition.theme,
            description=definition.description,
            columns=definition.columns,
            func=broken,
        ))

        results = catalog.run_all(["gender_distribution", "condition_analysis"])

        assert results["gender_distribution"].is_failure()
        assert results["gender_distribution"].error_type == "QueryExecutionError"
        assert "boom" in results["gender_distribution"].error
        assert results["condition_analysis"].is_success()

    def test_run_wraps_query_errors(self, catalog, monkeypatch):
        definition = QUERY_CATALOG["summary_statistics"]
        monkeypatch.setitem(QUERY_CATALOG, "summary_statistics", definition.__class__(
            name=definition.name,
            theme=definition.theme,
            description=definition.description,
            columns=definition.columns,
            func=lambda df, config: df["missing_column"],
        ))
        with pytest.raises(QueryExecutionError) as exc_info:
            catalog.run("summary_statistics")
        assert exc_info.value.query_name == "summary_statistics"

    def test_unreadable_store_fails_every_query(self, catalog, monkeypatch):
        monkeypatch.setattr(
            catalog.store, "fetch_admissions", lambda: Result.failure_result("disk on fire", error_type="StorageError")
        )
        results = catalog.run_all(["monthly_kpis", "condition_summary"])
        assert all(result.is_failure() for result in results.values())
        assert "disk on fire" in results["monthly_kpis"].error
