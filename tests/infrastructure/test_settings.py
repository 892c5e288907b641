"""Tests for application settings and logging setup."""

import json
import logging

import pytest

from admission_analytics.domain.services.reporting import CatalogConfig
from admission_analytics.infrastructure.logging_config import StructuredFormatter, setup_logging
from admission_analytics.infrastructure.settings import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("AA_LOG_LEVEL", "AA_JSON_LOGS", "AA_STRICT_ENRICHMENT", "AA_TOP_CASES_LIMIT", "AA_DB_TYPE", "AA_DB_PATH"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.log_level == "INFO"
        assert not settings.json_logs
        assert settings.strict_enrichment
        assert settings.catalog_config() == CatalogConfig()
        assert settings.get_db_path() == ":memory:"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AA_JSON_LOGS", "true")
        monkeypatch.setenv("AA_STRICT_ENRICHMENT", "false")
        monkeypatch.setenv("AA_HIGH_COST_PERCENTILE", "0.95")
        monkeypatch.setenv("AA_HOSPITAL_RANK_LIMIT", "5")
        monkeypatch.setenv("AA_REPORT_WORKERS", "4")

        settings = Settings()

        assert settings.json_logs
        assert not settings.strict_enrichment
        assert settings.report_workers == 4
        assert settings.catalog_config().high_cost_percentile == 0.95
        assert settings.catalog_config().hospital_rank_limit == 5

    def test_memory_store_has_no_path(self, monkeypatch):
        monkeypatch.setenv("AA_DB_TYPE", "memory")
        settings = Settings()
        assert settings.db_config.db_type == "memory"
        with pytest.raises(ValueError, match="memory"):
            settings.get_db_path()


class TestLogging:

    def test_structured_formatter_emits_json(self):
        record = logging.LogRecord("admission_analytics.test", logging.INFO, __file__, 1, "ran %s", ("report",), None)
        record.report = "gender_distribution"

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "ran report"
        assert payload["level"] == "INFO"
        assert payload["report"] == "gender_distribution"

    def test_setup_logging_sets_level(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(use_json=True, log_level="DEBUG")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
