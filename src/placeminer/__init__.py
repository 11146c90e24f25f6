"""
PlaceMiner - company contact enrichment from map listings.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, load_config
from .errors import Busy, IngestError, JobError
from .extractor import ExtractionEngine
from .orchestrator import Orchestrator
from .progress import ProgressBoard, ProgressChannel
from .protocols import ProgressEvent, ResultRecord, StartResult, WorkItem

__all__ = [
    "__version__",
    "Config",
    "load_config",
    "Busy",
    "IngestError",
    "JobError",
    "ExtractionEngine",
    "Orchestrator",
    "ProgressBoard",
    "ProgressChannel",
    "ProgressEvent",
    "ResultRecord",
    "StartResult",
    "WorkItem",
]
