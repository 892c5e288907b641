"""Domain layer for Admission Analytics.

This module contains the admission record schema, the store contract and
the analytics services. Domain code depends only on pandas and Pydantic.
"""

from .admission_record import AdmissionRecord, records_to_frame
from .enums import AdmissionType, AgeGroup, Gender, TestResult

__all__ = [
    "AdmissionRecord",
    "records_to_frame",
    "AdmissionType",
    "AgeGroup",
    "Gender",
    "TestResult",
]
