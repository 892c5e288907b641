"""Tests for name normalization and derived-field enrichment."""

import pandas as pd
import pytest

from admission_analytics.domain.enums import AgeGroup
from admission_analytics.domain.ports import EnrichmentError
from admission_analytics.domain.services.enrichment import (
    EnrichmentService,
    age_group,
    length_of_stay,
    normalize_name,
    normalize_names,
)

from tests.factories import RAW_COLUMNS, SAMPLE_ROWS, admission, make_admissions


class TestNormalizeName:
    """Title-casing of patient names."""

    @pytest.mark.parametrize("raw, expected", [
        ("john SMITH", "John Smith"),
        ("JOHN", "John"),
        ("mary o'neil-smith", "Mary O'Neil-Smith"),
        ("  ann   lee ", "  Ann   Lee "),
        ("dr. jekyll", "Dr. Jekyll"),
    ])
    def test_title_cases_every_word(self, raw, expected):
        assert normalize_name(raw) == expected

    @pytest.mark.parametrize("raw", [
        "aNNa-maRIA de la CRUZ",
        "ßa müller",
        "ﬁona GRAẞ",
        "İSTANBUL ayşe",
        "ǆemal ǅokić",
        "ÉLODIE d'ARC",
        "ΟΔΥΣΣΕΑΣ παπαδοπουλος",
        "o'neil-smith 3rd",
    ])
    def test_is_idempotent(self, raw):
        once = normalize_name(raw)
        assert normalize_name(once) == once
        assert len(once) == len(raw)

    @pytest.mark.parametrize("raw, expected", [
        ("ßa müller", "ßa Müller"),
        ("ÉLODIE", "Élodie"),
        ("ǆemal", "Ǆemal"),
    ])
    def test_non_ascii_letters(self, raw, expected):
        assert normalize_name(raw) == expected

    @pytest.mark.parametrize("value", [None, ""])
    def test_null_and_empty_pass_through(self, value):
        assert normalize_name(value) == value

    def test_vectorized_leaves_missing_values(self):
        names = pd.Series(["jane DOE", None, "BOB"])
        result = normalize_names(names)
        assert result.iloc[0] == "Jane Doe"
        assert pd.isna(result.iloc[1])
        assert result.iloc[2] == "Bob"


class TestAgeGroup:
    """Bucketing of ages into the five ordered groups."""

    @pytest.mark.parametrize("age, expected", [
        (0, AgeGroup.MINOR),
        (17, AgeGroup.MINOR),
        (18, AgeGroup.YOUNG_ADULT),
        (35, AgeGroup.YOUNG_ADULT),
        (36, AgeGroup.MIDDLE_AGE),
        (55, AgeGroup.MIDDLE_AGE),
        (56, AgeGroup.SENIOR),
        (70, AgeGroup.SENIOR),
        (71, AgeGroup.ELDERLY),
        (120, AgeGroup.ELDERLY),
    ])
    def test_cut_points_are_exact(self, age, expected):
        assert age_group(age) is expected

    @pytest.mark.parametrize("age", [-1, 121, 200])
    def test_out_of_range_age_raises(self, age):
        with pytest.raises(EnrichmentError):
            age_group(age)

    def test_missing_age_has_no_group(self):
        assert age_group(None) is None
        assert age_group(float("nan")) is None

    def test_groups_sort_in_display_order(self):
        assert [group.sort_order for group in AgeGroup] == [1, 2, 3, 4, 5]
        assert AgeGroup.from_label("Senior (56-70)") is AgeGroup.SENIOR
        assert AgeGroup.from_label("Unknown") is None


class TestLengthOfStay:
    """Whole-day stay computation."""

    def test_same_day_discharge_is_zero(self):
        assert length_of_stay(pd.Timestamp("2024-03-01"), pd.Timestamp("2024-03-01")) == 0

    def test_five_day_stay(self):
        assert length_of_stay(pd.Timestamp("2024-01-01"), pd.Timestamp("2024-01-06")) == 5

    def test_discharge_before_admission_is_negative(self):
        assert length_of_stay(pd.Timestamp("2024-01-10"), pd.Timestamp("2024-01-07")) == -3

    def test_missing_discharge_is_null(self):
        assert length_of_stay(pd.Timestamp("2024-01-10"), None) is None


class TestEnrichmentService:
    """Whole-table enrichment."""

    def test_enriches_sample_rows(self, raw_frame):
        report = EnrichmentService().enrich(raw_frame)
        frame = report.frame

        assert frame["name"].tolist() == ["John Smith", "Mary O'Neil", "Bob Jones", "Alice Brown", "Carl White"]
        assert frame["length_of_stay"].tolist() == [5, 5, 5, 2, 10]
        assert frame["age_group"].tolist() == [
            "Young Adult (18-35)",
            "Middle Age (36-55)",
            "Senior (56-70)",
            "Minor (0-17)",
            "Elderly (70+)",
        ]
        assert report.records_enriched == 5
        assert not report.has_errors

    def test_does_not_mutate_input(self, raw_frame):
        before = raw_frame.copy()
        EnrichmentService().enrich(raw_frame)
        pd.testing.assert_frame_equal(raw_frame, before)

    def test_null_discharge_gives_null_stay_without_error(self):
        frame = make_admissions([SAMPLE_ROWS[0]])
        frame["discharge_date"] = pd.NaT

        report = EnrichmentService(strict=True).enrich(frame)

        assert pd.isna(report.frame["length_of_stay"].iloc[0])
        assert report.null_length_of_stay == 1
        assert not report.has_errors

    def test_negative_stay_is_kept_and_reported(self):
        frame = make_admissions([SAMPLE_ROWS[0]])
        frame["discharge_date"] = pd.Timestamp("2023-12-29")

        report = EnrichmentService().enrich(frame)

        assert report.frame["length_of_stay"].iloc[0] == -3
        assert report.negative_stay_ids == [1]

    def test_null_age_is_an_ordinary_null(self):
        frame = make_admissions([SAMPLE_ROWS[0]])
        frame["age"] = None

        report = EnrichmentService(strict=True).enrich(frame)

        assert report.frame["age_group"].iloc[0] is None
        assert report.invalid_age_ids == []

    def test_strict_mode_raises_on_out_of_range_age(self):
        frame = make_admissions([SAMPLE_ROWS[0], SAMPLE_ROWS[1]])
        frame.loc[1, "age"] = 150

        with pytest.raises(EnrichmentError) as exc_info:
            EnrichmentService(strict=True).enrich(frame)

        assert exc_info.value.patient_ids == [2]

    def test_lenient_mode_flags_out_of_range_age(self):
        frame = make_admissions([SAMPLE_ROWS[0], SAMPLE_ROWS[1]])
        frame.loc[1, "age"] = -4

        report = EnrichmentService(strict=False).enrich(frame)

        assert report.invalid_age_ids == [2]
        assert report.frame["age_group"].iloc[0] == "Young Adult (18-35)"
        assert report.frame["age_group"].iloc[1] is None
        assert report.has_errors

    def test_malformed_dates_are_flagged(self):
        frame = pd.DataFrame([admission(date_of_admission="not a date"), admission()])
        frame.insert(0, "patient_id", [7, 8])

        with pytest.raises(EnrichmentError):
            EnrichmentService(strict=True).enrich(frame)

        report = EnrichmentService(strict=False).enrich(frame)
        assert report.malformed_date_ids == [7]
        assert pd.isna(report.frame["length_of_stay"].iloc[0])
        assert report.frame["length_of_stay"].iloc[1] == 5

    def test_mixed_date_formats_are_parsed(self):
        frame = pd.DataFrame([
            admission(date_of_admission="2024-01-10", discharge_date="2024-01-15"),
            admission(date_of_admission="01/15/2024", discharge_date="01/20/2024"),
        ])
        frame.insert(0, "patient_id", [1, 2])

        report = EnrichmentService(strict=True).enrich(frame)

        assert report.malformed_date_ids == []
        assert report.frame["length_of_stay"].tolist() == [5, 5]

    def test_summary_has_counts_only(self, raw_frame):
        summary = EnrichmentService().enrich(raw_frame).summary()
        assert summary == {
            "records_enriched": 5,
            "null_length_of_stay": 0,
            "negative_stays": 0,
            "invalid_ages": 0,
            "malformed_dates": 0,
        }

    def test_raw_columns_are_kept(self, raw_frame):
        frame = EnrichmentService().enrich(raw_frame).frame
        assert set(RAW_COLUMNS) <= set(frame.columns)
