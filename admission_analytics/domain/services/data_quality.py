"""Data-quality check over the admissions table.

Counts the three defect classes the reporting layer cares about. Defects
are surfaced for human review and never corrected or rejected here.
"""

import logging

import pandas as pd
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MIN_VALID_AGE = 0
MAX_VALID_AGE = 120


class DataQualityReport(BaseModel):
    """Defect counts for one snapshot of the admissions table."""

    total_records: int = Field(0, ge=0)
    negative_billing: int = Field(0, ge=0, description="billing_amount < 0")
    invalid_age: int = Field(0, ge=0, description="age outside [0, 120]")
    date_errors: int = Field(0, ge=0, description="discharge_date < date_of_admission")

    @property
    def defect_count(self) -> int:
        return self.negative_billing + self.invalid_age + self.date_errors

    @property
    def has_defects(self) -> bool:
        return self.defect_count > 0


def check_data_quality(frame: pd.DataFrame) -> DataQualityReport:
    """Count negative billing amounts, impossible ages and inverted stays.

    Null values never count as defects. An empty frame reports zeros.

    Parameters:
        frame: Admissions frame (base columns at minimum)

    Returns:
        DataQualityReport with one count per defect class
    """
    if frame is None or frame.empty:
        return DataQualityReport()

    billing = pd.to_numeric(frame.get("billing_amount"), errors="coerce")
    age = pd.to_numeric(frame.get("age"), errors="coerce")
    admitted = pd.to_datetime(frame.get("date_of_admission"), errors="coerce", format="mixed")
    discharged = pd.to_datetime(frame.get("discharge_date"), errors="coerce", format="mixed")

    report = DataQualityReport(
        total_records=len(frame),
        negative_billing=int((billing < 0).sum()),
        invalid_age=int(((age < MIN_VALID_AGE) | (age > MAX_VALID_AGE)).sum()),
        date_errors=int((discharged < admitted).sum()),
    )

    if report.has_defects:
        logger.warning(
            f"Data quality check found {report.defect_count} defects in {report.total_records} records "
            f"(negative_billing={report.negative_billing}, invalid_age={report.invalid_age}, "
            f"date_errors={report.date_errors})"
        )
    else:
        logger.info(f"Data quality check passed for {report.total_records} records")

    return report
