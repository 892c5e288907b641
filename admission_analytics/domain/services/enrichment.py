"""Cleaning and derived-field enrichment.

Three transformations run once after load, in this order:

1. ``name`` is rewritten to title case (SQL ``INITCAP`` semantics)
2. ``length_of_stay`` = discharge_date - date_of_admission, in whole days
3. ``age_group`` buckets ``age`` into the five ordered AgeGroup labels

Nulls flow through as nulls. Values that no rule can handle (ages outside
every bucket, dates that are present but unparseable) are surfaced through
EnrichmentReport and, in strict mode, EnrichmentError.
"""

import logging
import re
from typing import Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from admission_analytics.domain.enums import AgeGroup
from admission_analytics.domain.ports import EnrichmentError
from admission_analytics.domain.services.data_quality import MAX_VALID_AGE, MIN_VALID_AGE

logger = logging.getLogger(__name__)

# A "word" is a run of letters/digits; everything else separates words.
_WORD_PATTERN = re.compile(r"[^\W_]+")


# ============================================================================
# Name normalization
# ============================================================================

def _recase(char: str, upper: bool) -> str:
    # Characters whose case mapping changes length (ß, ﬁ, İ) are kept as-is.
    mapped = char.upper() if upper else char.lower()
    return mapped if len(mapped) == 1 else char


def _capitalize_word(match: re.Match) -> str:
    word = match.group(0)
    return _recase(word[0], True) + "".join(_recase(char, False) for char in word[1:])


def normalize_name(value: Optional[str]) -> Optional[str]:
    """Title-case a name: first letter of each word upper, the rest lower.

    Separators (spaces, hyphens, apostrophes) are kept as they are, so
    ``"mARY o'NEIL-smith"`` becomes ``"Mary O'Neil-Smith"``. The function is
    idempotent; None and empty strings pass through unchanged.
    """
    if value is None or not isinstance(value, str) or value == "":
        return value
    return _WORD_PATTERN.sub(_capitalize_word, value)


def normalize_names(names: pd.Series) -> pd.Series:
    """Vectorized :func:`normalize_name` that leaves missing values alone."""
    return names.map(normalize_name, na_action="ignore")


# ============================================================================
# Derived fields
# ============================================================================

def age_group(age) -> Optional[AgeGroup]:
    """Bucket an age into its AgeGroup; a missing age has no group.

    Raises:
        EnrichmentError: If age is outside [0, 120]
    """
    if age is None or pd.isna(age):
        return None
    if age < MIN_VALID_AGE or age > MAX_VALID_AGE:
        raise EnrichmentError(f"Age {age} is outside every age group ({MIN_VALID_AGE}-{MAX_VALID_AGE})")

    if age < AgeGroup.YOUNG_ADULT.lower_bound:
        return AgeGroup.MINOR
    if age < AgeGroup.MIDDLE_AGE.lower_bound:
        return AgeGroup.YOUNG_ADULT
    if age < AgeGroup.SENIOR.lower_bound:
        return AgeGroup.MIDDLE_AGE
    if age < AgeGroup.ELDERLY.lower_bound:
        return AgeGroup.SENIOR
    return AgeGroup.ELDERLY


def length_of_stay(admitted, discharged) -> Optional[int]:
    """Whole days between admission and discharge, or None if either is missing.

    Negative values are returned as-is; they indicate a discharge recorded
    before the admission.
    """
    if admitted is None or discharged is None or pd.isna(admitted) or pd.isna(discharged):
        return None
    return (pd.Timestamp(discharged).normalize() - pd.Timestamp(admitted).normalize()).days


def _parse_dates(values: pd.Series) -> tuple[pd.Series, pd.Series]:
    """Parse a date column; return (parsed, mask of present-but-malformed)."""
    parsed = pd.to_datetime(values, errors="coerce", format="mixed")
    malformed = values.notna() & parsed.isna()
    if pd.api.types.is_string_dtype(values) or pd.api.types.is_object_dtype(values):
        malformed &= values.map(lambda v: not (isinstance(v, str) and v.strip() == ""))
    return parsed, malformed


# ============================================================================
# Enrichment service
# ============================================================================

class EnrichmentReport(BaseModel):
    """Outcome of one enrichment run.

    Attributes:
        frame: Enriched frame (patient_id, name, length_of_stay, age_group
            plus every input column)
        records_enriched: Number of rows processed
        null_length_of_stay: Rows without a discharge (or admission) date
        negative_stay_ids: Rows whose discharge precedes admission
        invalid_age_ids: Rows whose age fits no bucket (age_group left null)
        malformed_date_ids: Rows with a date that could not be parsed
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    frame: pd.DataFrame
    records_enriched: int = 0
    null_length_of_stay: int = 0
    negative_stay_ids: list = Field(default_factory=list)
    invalid_age_ids: list = Field(default_factory=list)
    malformed_date_ids: list = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid_age_ids or self.malformed_date_ids)

    def summary(self) -> dict:
        """Counts only, without the frame (safe for logging and JSON)."""
        return {
            "records_enriched": self.records_enriched,
            "null_length_of_stay": self.null_length_of_stay,
            "negative_stays": len(self.negative_stay_ids),
            "invalid_ages": len(self.invalid_age_ids),
            "malformed_dates": len(self.malformed_date_ids),
        }


class EnrichmentService:
    """Normalizes names and computes derived columns for a whole table.

    Parameters:
        strict: Raise EnrichmentError when any row has an age outside every
            bucket or a malformed date. When False those rows keep a null
            derived value and are listed in the report instead.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict

    def enrich(self, frame: pd.DataFrame, malformed_date_ids: Optional[list] = None) -> EnrichmentReport:
        """Return an enriched copy of ``frame`` and a report of anomalies.

        ``malformed_date_ids`` names rows whose dates were already found
        unparseable upstream (and stored as null); they are reported as
        malformed together with the ones detected here.

        Raises:
            EnrichmentError: In strict mode, if any row cannot be enriched
        """
        enriched = frame.copy()
        ids = enriched["patient_id"] if "patient_id" in enriched.columns else pd.Series(enriched.index, index=enriched.index)

        enriched["name"] = normalize_names(enriched["name"])

        admitted, bad_admitted = _parse_dates(enriched["date_of_admission"])
        discharged, bad_discharged = _parse_dates(enriched["discharge_date"])
        malformed = bad_admitted | bad_discharged
        if malformed_date_ids:
            malformed |= ids.isin(malformed_date_ids)
        enriched["date_of_admission"] = admitted
        enriched["discharge_date"] = discharged

        stay = (discharged.dt.normalize() - admitted.dt.normalize()).dt.days
        enriched["length_of_stay"] = stay.astype("Int64")

        ages = pd.to_numeric(enriched["age"], errors="coerce")
        invalid_age = (ages < MIN_VALID_AGE) | (ages > MAX_VALID_AGE)
        enriched["age_group"] = ages.where(~invalid_age).map(
            lambda a: age_group(a).value, na_action="ignore"
        ).astype(object)
        enriched["age_group"] = enriched["age_group"].where(enriched["age_group"].notna(), None)

        report = EnrichmentReport(
            frame=enriched,
            records_enriched=len(enriched),
            null_length_of_stay=int(enriched["length_of_stay"].isna().sum()),
            negative_stay_ids=ids[stay < 0].tolist(),
            invalid_age_ids=ids[invalid_age].tolist(),
            malformed_date_ids=ids[malformed].tolist(),
        )

        if report.negative_stay_ids:
            logger.warning(
                f"{len(report.negative_stay_ids)} records have a discharge date before admission; "
                "negative length_of_stay kept"
            )

        if report.has_errors:
            message = (
                f"Enrichment could not derive fields for {len(report.invalid_age_ids)} records with "
                f"out-of-range ages and {len(report.malformed_date_ids)} records with malformed dates"
            )
            if self.strict:
                raise EnrichmentError(
                    message,
                    patient_ids=report.invalid_age_ids + report.malformed_date_ids,
                    details=report.summary(),
                )
            logger.warning(message)

        logger.info(f"Enriched {report.records_enriched} records")
        return report
