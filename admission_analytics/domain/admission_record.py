"""Admission Record Schema Definitions.

This module defines the canonical shape of one row of the
``patient_admissions`` table: sixteen base columns populated by the loader
and two derived columns populated by the enrichment stage.

Architecture:
    - Pure domain model with zero infrastructure dependencies
    - Validates types only; range defects (negative billing, impossible ages,
      discharge before admission) are counted by the quality check and are
      never rejected here
    - Column lists below are the schema contract BI tools bind to
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Base columns in table order
BASE_COLUMNS = [
    "patient_id",
    "name",
    "age",
    "gender",
    "blood_type",
    "medical_condition",
    "date_of_admission",
    "doctor",
    "hospital",
    "insurance_provider",
    "billing_amount",
    "room_number",
    "admission_type",
    "discharge_date",
    "medication",
    "test_results",
]

#: Columns computed by the enrichment stage
DERIVED_COLUMNS = ["length_of_stay", "age_group"]

#: Calendar columns appended by the export projection
CALENDAR_COLUMNS = ["admission_year", "admission_month", "admission_quarter", "admission_day"]

TABLE_COLUMNS = BASE_COLUMNS + DERIVED_COLUMNS
EXPORT_COLUMNS = TABLE_COLUMNS + CALENDAR_COLUMNS

DATE_COLUMNS = ["date_of_admission", "discharge_date"]


class AdmissionRecord(BaseModel):
    """One hospital admission event for one patient visit.

    Parameters:
        patient_id: Unique identifier, assigned by the store when omitted
        name: Patient name as loaded (title-cased by enrichment)
        age: Age in years at admission
        gender: Recorded gender
        blood_type: ABO/Rh blood type
        medical_condition: Primary condition treated
        date_of_admission: Admission date
        doctor: Attending doctor
        hospital: Admitting hospital
        insurance_provider: Payer name
        billing_amount: Billed amount, two decimal places
        room_number: Room number
        admission_type: Emergency, Elective or Urgent
        discharge_date: Discharge date
        medication: Medication prescribed
        test_results: Normal, Abnormal or Inconclusive
        length_of_stay: Derived stay in days (None until enriched)
        age_group: Derived age bucket label (None until enriched)
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    patient_id: Optional[int] = Field(None, description="Unique admission identifier")
    name: Optional[str] = Field(None, max_length=100)
    age: Optional[int] = Field(None, description="Age in years (expected 0-120)")
    gender: Optional[str] = Field(None, max_length=10)
    blood_type: Optional[str] = Field(None, max_length=5)
    medical_condition: Optional[str] = Field(None, max_length=50)
    date_of_admission: Optional[date] = None
    doctor: Optional[str] = Field(None, max_length=100)
    hospital: Optional[str] = Field(None, max_length=200)
    insurance_provider: Optional[str] = Field(None, max_length=50)
    billing_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    room_number: Optional[int] = None
    admission_type: Optional[str] = Field(None, max_length=20)
    discharge_date: Optional[date] = None
    medication: Optional[str] = Field(None, max_length=50)
    test_results: Optional[str] = Field(None, max_length=20)

    length_of_stay: Optional[int] = None
    age_group: Optional[str] = None

    @field_validator("date_of_admission", "discharge_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        """Accept ISO strings and datetimes for date fields."""
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            return datetime.strptime(v.strip()[:10], "%Y-%m-%d").date()
        return v

    @field_validator("billing_amount", mode="before")
    @classmethod
    def quantize_billing(cls, v):
        """Round raw billing amounts to cents so DECIMAL(10,2) accepts them."""
        if v is None or v == "":
            return None
        return Decimal(str(v)).quantize(Decimal("0.01"))

    def to_row(self) -> dict:
        """Return the record as a flat dict keyed by table column."""
        row = self.model_dump()
        if row["billing_amount"] is not None:
            row["billing_amount"] = float(row["billing_amount"])
        return {column: row[column] for column in TABLE_COLUMNS}


def records_to_frame(records: Iterable[AdmissionRecord]) -> pd.DataFrame:
    """Build a frame with the table's columns from admission records.

    Date columns are converted to ``datetime64`` so the frame matches what
    the stores return.
    """
    frame = pd.DataFrame([record.to_row() for record in records], columns=TABLE_COLUMNS)
    for column in DATE_COLUMNS:
        frame[column] = pd.to_datetime(frame[column])
    return frame
