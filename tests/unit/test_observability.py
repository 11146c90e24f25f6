"""
Tests for structured logging setup and Prometheus metrics.
"""

import json
import logging

import pytest
import structlog
from placeminer.config import MonitoringConfig
from placeminer.extractor import ExtractionEngine
from placeminer.observability import METRICS, configure_logging, increment
from placeminer.orchestrator import Orchestrator
from placeminer.protocols import WorkItem

from tests.helpers import ACME_HTML, LOADING_HTML, FakeContentSource, histogram_observes, metric_delta


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.mark.unit
class TestLogging:
    def test_json_lines_to_log_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "run.log"
        configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

        structlog.contextvars.bind_contextvars(run_id="run-123")
        structlog.get_logger("tests.logging").info("Job finished", job_id=7)

        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        entry = next(line for line in lines if line["event"] == "Job finished")
        assert entry["job_id"] == 7
        assert entry["run_id"] == "run-123"
        assert entry["level"] == "info"

    def test_level_filters_debug(self, tmp_path, restore_logging):
        log_file = tmp_path / "run.log"
        configure_logging(MonitoringConfig(log_level="WARNING", log_file=str(log_file)))

        structlog.get_logger("tests.logging").info("hidden")

        assert "hidden" not in log_file.read_text(encoding="utf-8")


@pytest.mark.unit
class TestMetrics:
    def test_unknown_metric_is_ignored(self):
        increment("does_not_exist")

    @pytest.mark.asyncio
    async def test_found_job_updates_metrics(self, fake_clock):
        orchestrator = Orchestrator(
            FakeContentSource(default=[LOADING_HTML, ACME_HTML]),
            ExtractionEngine(),
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

        with metric_delta(METRICS["jobs_total"].labels(outcome="found")), metric_delta(
            METRICS["surfaces_open"], 0
        ), histogram_observes(METRICS["ready_polls"]):
            await orchestrator.run([WorkItem(id=0, company="Acme", country="US")])

    @pytest.mark.asyncio
    async def test_failed_job_counted_by_kind(self, fake_clock):
        orchestrator = Orchestrator(
            FakeContentSource(fail_on=["Acme"]),
            ExtractionEngine(),
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

        with metric_delta(METRICS["jobs_total"].labels(outcome="ResourceCreationFailure")):
            await orchestrator.run([WorkItem(id=0, company="Acme", country="US")])
