"""Shared helpers for the PlaceMiner test suite."""

from .fakes import FailingContentSource, FakeClock, FakeContentSource, FakeSurface, RecordingListener
from .metric_delta import histogram_observes, metric_delta
from .pages import ACME_HTML, FULL_PLACE_HTML, LOADING_HTML, READY_WITHOUT_NAME_HTML

__all__ = [
    "FailingContentSource",
    "FakeClock",
    "FakeContentSource",
    "FakeSurface",
    "RecordingListener",
    "histogram_observes",
    "metric_delta",
    "ACME_HTML",
    "FULL_PLACE_HTML",
    "LOADING_HTML",
    "READY_WITHOUT_NAME_HTML",
]
