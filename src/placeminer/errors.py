"""
Exception taxonomy for PlaceMiner.

Per-job errors carry a FailureKind so the orchestrator can turn them into a
failed ResultRecord without inspecting message text.
"""

from __future__ import annotations

from typing import Optional

from .protocols import FailureKind


class PlaceMinerError(Exception):
    """Base class for all PlaceMiner errors."""


class Busy(PlaceMinerError):
    """A run was requested while another run is active."""


class IngestError(PlaceMinerError):
    """The work-item input could not be turned into work items."""


class JobError(PlaceMinerError):
    """A single job failed. Never fatal to the run."""

    kind: FailureKind = FailureKind.EXTRACTION_ERROR

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause

    @property
    def detail(self) -> str:
        return f"{self.kind.value}: {self}"


class ResourceCreationFailure(JobError):
    """The content source could not create a render surface."""

    kind = FailureKind.RESOURCE_CREATION_FAILURE


class TimeoutWaitingForReady(JobError):
    """The surface never became ready within the poll bound."""

    kind = FailureKind.TIMEOUT_WAITING_FOR_READY

    def __init__(self, message: str, *, attempts: int = 0, elapsed: float = 0.0) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.elapsed = elapsed


class ExtractionError(JobError):
    """A fault occurred while extracting fields."""

    kind = FailureKind.EXTRACTION_ERROR


class NotFound(JobError):
    """Surface was ready but carried no identifying field."""

    kind = FailureKind.NOT_FOUND
