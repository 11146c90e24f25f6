"""
Defines Prometheus metrics for the orchestrator.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test collection, reloads) must not raise on
# duplicate registration, so existing collectors are reused by name.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "jobs_total": Counter(
            "placeminer_jobs_total",
            "Jobs finished by the orchestrator, by outcome",
            ["outcome"],
        ),
        "ready_polls": Histogram(
            "placeminer_ready_polls",
            "Readiness polls consumed per job",
            buckets=[1, 2, 3, 5, 10, 20, 30, 50],
        ),
        "job_duration_seconds": Histogram(
            "placeminer_job_duration_seconds",
            "Wall time of one job from dispatch to release",
            buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0],
        ),
        "surfaces_open": Gauge(
            "placeminer_surfaces_open",
            "Render surfaces currently held by the orchestrator",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()

_server_port: Optional[int] = None


def start_metrics_server(port: int) -> None:
    """Start the Prometheus HTTP exporter once per process."""
    global _server_port
    if _server_port is not None:
        return
    start_http_server(port)
    _server_port = port
