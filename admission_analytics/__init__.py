"""Admission Analytics - descriptive analytics over hospital admissions."""

__version__ = "1.0.0"
