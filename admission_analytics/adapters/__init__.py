"""Adapters layer for Admission Analytics.

This module contains input/output adapters that interface with external
systems: the CSV loader and the admission stores. Adapters implement the
Port interfaces defined in the domain layer.
"""
