"""Loaders that populate the admissions table from external files."""

from admission_analytics.adapters.loaders.csv_loader import AdmissionCSVLoader

__all__ = ["AdmissionCSVLoader"]
