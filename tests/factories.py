"""Test data builders: a small admissions table with hand-checked aggregates.

Sample rows (ids assigned 1..5 in this order):

    name          age  gender  condition  admitted    discharged  hospital  insurer   billing  type       result
    john SMITH    30   Male    Diabetes   2024-01-01  2024-01-06  Alpha     Aetna     100.00   Emergency  Normal
    mary o'neil   45   Female  Diabetes   2024-01-15  2024-01-20  Alpha     Aetna     200.00   Elective   Abnormal
    bob JONES     60   Male    Diabetes   2024-02-10  2024-02-15  Beta      Cigna     300.00   Emergency  Normal
    alice brown   10   Female  Asthma     2024-02-20  2024-02-22  Beta      Cigna      50.00   Urgent     Inconclusive
    carl white    80   Male    Asthma     2025-03-05  2025-03-15  Alpha     Medicare 1000.00   Elective   Abnormal
"""

import pandas as pd

SAMPLE_ROWS = [
    ("john SMITH", 30, "Male", "A+", "Diabetes", "2024-01-01", "Dr. Adams", "Alpha", "Aetna", 100.00, 101, "Emergency", "2024-01-06", "Metformin", "Normal"),
    ("mary o'neil", 45, "Female", "B+", "Diabetes", "2024-01-15", "Dr. Baker", "Alpha", "Aetna", 200.00, 102, "Elective", "2024-01-20", "Insulin", "Abnormal"),
    ("bob JONES", 60, "Male", "O-", "Diabetes", "2024-02-10", "Dr. Adams", "Beta", "Cigna", 300.00, 201, "Emergency", "2024-02-15", "Metformin", "Normal"),
    ("alice brown", 10, "Female", "AB+", "Asthma", "2024-02-20", "Dr. Clark", "Beta", "Cigna", 50.00, 202, "Urgent", "2024-02-22", "Albuterol", "Inconclusive"),
    ("carl white", 80, "Male", "A-", "Asthma", "2025-03-05", "Dr. Baker", "Alpha", "Medicare", 1000.00, 103, "Elective", "2025-03-15", "Albuterol", "Abnormal"),
]

RAW_COLUMNS = [
    "name", "age", "gender", "blood_type", "medical_condition", "date_of_admission", "doctor",
    "hospital", "insurance_provider", "billing_amount", "room_number", "admission_type",
    "discharge_date", "medication", "test_results",
]

# Header row of the public healthcare dataset CSV, same order as RAW_COLUMNS
CSV_HEADERS = [
    "Name", "Age", "Gender", "Blood Type", "Medical Condition", "Date of Admission", "Doctor",
    "Hospital", "Insurance Provider", "Billing Amount", "Room Number", "Admission Type",
    "Discharge Date", "Medication", "Test Results",
]


def make_admissions(rows, with_ids: bool = True) -> pd.DataFrame:
    """Raw admissions frame from tuples in RAW_COLUMNS order."""
    frame = pd.DataFrame(rows, columns=RAW_COLUMNS)
    frame["date_of_admission"] = pd.to_datetime(frame["date_of_admission"])
    frame["discharge_date"] = pd.to_datetime(frame["discharge_date"])
    if with_ids:
        frame.insert(0, "patient_id", range(1, len(frame) + 1))
    return frame


def admission(**overrides) -> dict:
    """One raw admission row as a dict, based on the first sample row."""
    row = dict(zip(RAW_COLUMNS, SAMPLE_ROWS[0]))
    row.update(overrides)
    return row


def write_sample_csv(path, rows=SAMPLE_ROWS) -> None:
    """Write rows as a CSV with the public dataset's headers."""
    pd.DataFrame(rows, columns=CSV_HEADERS).to_csv(path, index=False)
