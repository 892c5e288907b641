"""Shared fixtures built from the sample admissions in tests.factories."""

import pandas as pd
import pytest

from admission_analytics.adapters.storage import DuckDBAdmissionStore, InMemoryAdmissionStore
from admission_analytics.domain.services.enrichment import EnrichmentService

from tests.factories import SAMPLE_ROWS, make_admissions


@pytest.fixture
def raw_frame() -> pd.DataFrame:
    return make_admissions(SAMPLE_ROWS)


@pytest.fixture
def enriched_frame(raw_frame) -> pd.DataFrame:
    return EnrichmentService().enrich(raw_frame).frame


@pytest.fixture
def memory_store(raw_frame):
    """In-memory store holding the sample rows, not yet enriched."""
    return InMemoryAdmissionStore(raw_frame)


@pytest.fixture
def duckdb_store(raw_frame):
    """In-memory DuckDB store holding the sample rows, not yet enriched."""
    store = DuckDBAdmissionStore(db_path=":memory:")
    store.initialize_schema()
    result = store.load_dataframe(raw_frame.drop(columns=["patient_id"]))
    assert result.is_success(), result.error
    yield store
    store.close()
