"""
Core contracts and dataclasses for PlaceMiner.

This module defines the data that flows between the orchestrator, the
extraction engine and the outer collaborators:

- WorkItem: one company/city/country identifier to enrich
- ExtractionOutcome: Ready / NotReady / Failed result of reading a surface
- ResultRecord: the normalized output row
- ProgressEvent: one notification per finished job
- ContentSource / RenderSurface: the rendering adapter contract
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Hashable, Optional, Protocol, Tuple, Union, runtime_checkable

# ============================================================================
# Enums
# ============================================================================


class RunState(Enum):
    """Lifecycle of an orchestrator: Idle -> Running -> Idle."""

    IDLE = "idle"
    RUNNING = "running"


class StartResult(Enum):
    """Synchronous answer of Orchestrator.start()."""

    ACCEPTED = "accepted"
    BUSY = "busy"


class JobPhase(Enum):
    """Per-job state machine phases."""

    DISPATCHING = "dispatching"
    ACQUIRING_SURFACE = "acquiring_surface"
    WAITING_READY = "waiting_ready"
    EXTRACTING = "extracting"
    REPORTING = "reporting"
    RELEASING_SURFACE = "releasing_surface"


class FailureKind(Enum):
    """Classification of per-job failures."""

    RESOURCE_CREATION_FAILURE = "ResourceCreationFailure"
    TIMEOUT_WAITING_FOR_READY = "TimeoutWaitingForReady"
    EXTRACTION_ERROR = "ExtractionError"
    NOT_FOUND = "NotFound"


# ============================================================================
# Input
# ============================================================================


@dataclass(frozen=True)
class WorkItem:
    """One identifier to enrich. Company and country are guaranteed non-empty upstream."""

    id: Hashable
    company: str
    country: str
    city: Optional[str] = None


# ============================================================================
# Extraction outcomes
# ============================================================================


@dataclass(frozen=True)
class ContactFields:
    """Extracted contact fields. None means no strategy produced a value."""

    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    phone2: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass(frozen=True)
class Ready:
    """Surface is ready; fields are final."""

    fields: ContactFields
    snippet: str = ""


@dataclass(frozen=True)
class NotReady:
    """No content container yet; the caller should poll again."""


@dataclass(frozen=True)
class Failed:
    """An internal fault occurred while traversing the surface."""

    detail: str


ExtractionOutcome = Union[Ready, NotReady, Failed]


# ============================================================================
# Output
# ============================================================================


@dataclass(frozen=True)
class ResultRecord:
    """Normalized output row with a fixed column set."""

    company: str
    city: str
    country: str
    name: str = ""
    phone: str = ""
    website: str = ""
    email: str = ""
    address: str = ""

    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "Company",
        "City",
        "Country",
        "Name",
        "Phone",
        "Website",
        "Email",
        "Address",
    )

    @classmethod
    def failed(cls, item: WorkItem) -> ResultRecord:
        """Record carrying only the known WorkItem fields."""
        return cls(company=item.company, city=item.city or "", country=item.country)

    @classmethod
    def from_fields(cls, item: WorkItem, fields: ContactFields) -> ResultRecord:
        return cls(
            company=item.company,
            city=item.city or "",
            country=item.country,
            name=fields.name or "",
            phone=fields.phone or "",
            website=fields.website or "",
            email=fields.email or "",
            address=fields.address or "",
        )

    def to_row(self) -> Dict[str, str]:
        """Row keyed by the export column names, in column order."""
        values = (
            self.company,
            self.city,
            self.country,
            self.name,
            self.phone,
            self.website,
            self.email,
            self.address,
        )
        return dict(zip(self.COLUMNS, values))


@dataclass(frozen=True)
class ProgressEvent:
    """Notification emitted once per WorkItem, in completion order."""

    job_id: Hashable
    processed_count: int
    total: int
    success: bool
    status: str
    record: ResultRecord
    error_detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "processed_count": self.processed_count,
            "total": self.total,
            "success": self.success,
            "status": self.status,
            "record": self.record.to_row(),
            "error_detail": self.error_detail,
        }


# ============================================================================
# Collaborator Protocols
# ============================================================================


@runtime_checkable
class RenderSurface(Protocol):
    """One rendered query result, owned by exactly one job."""

    target: str

    async def snapshot(self) -> str:
        """Return the current serialized content of the surface."""
        ...


@runtime_checkable
class ContentSource(Protocol):
    """Creates and releases render surfaces for navigation targets."""

    def build_target(self, query: str) -> str:
        """Turn a query string into a navigation target."""
        ...

    async def create_surface(self, target: str) -> RenderSurface:
        """Open a fresh surface. Raises ResourceCreationFailure on failure."""
        ...

    async def release_surface(self, surface: RenderSurface) -> None:
        """Release a surface. Idempotent; errors are ignored."""
        ...
