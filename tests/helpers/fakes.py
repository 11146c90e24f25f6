"""
Test doubles for the orchestrator's collaborators.

FakeClock advances time only through its own sleep, FakeContentSource serves
scripted snapshots, and RecordingListener keeps every progress event.
"""

import asyncio
from typing import Dict, List, Optional, Sequence, Set

from placeminer.errors import ResourceCreationFailure
from placeminer.protocols import ProgressEvent

from .pages import LOADING_HTML


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeSurface:
    """Serves scripted snapshots; the last one repeats forever."""

    def __init__(self, target: str, snapshots: Sequence[str], error: Optional[Exception] = None) -> None:
        self.target = target
        self.snapshots = list(snapshots) or [LOADING_HTML]
        self.error = error
        self.snapshot_calls = 0

    async def snapshot(self) -> str:
        self.snapshot_calls += 1
        if self.error is not None:
            raise self.error
        index = min(self.snapshot_calls - 1, len(self.snapshots) - 1)
        return self.snapshots[index]


class FakeContentSource:
    """
    Content source returning FakeSurfaces scripted per query substring.

    ``pages`` maps a substring of the query (usually the company) to the
    snapshot sequence; ``fail_on`` lists substrings whose surface creation
    fails; ``gate`` blocks every creation until it is set.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, Sequence[str]]] = None,
        default: Sequence[str] = (LOADING_HTML,),
        fail_on: Sequence[str] = (),
        snapshot_errors: Optional[Dict[str, Exception]] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.default = list(default)
        self.fail_on = list(fail_on)
        self.snapshot_errors = dict(snapshot_errors or {})
        self.gate = gate
        self.targets: List[str] = []
        self.created: List[FakeSurface] = []
        self.released: List[FakeSurface] = []
        self.open_surfaces: Set[int] = set()
        self.max_open = 0

    def build_target(self, query: str) -> str:
        return f"fake://search/{query}"

    async def create_surface(self, target: str) -> FakeSurface:
        self.targets.append(target)
        if self.gate is not None:
            await self.gate.wait()
        if any(key in target for key in self.fail_on):
            raise RuntimeError(f"cannot render {target}")

        snapshots = next((pages for key, pages in self.pages.items() if key in target), self.default)
        error = next((err for key, err in self.snapshot_errors.items() if key in target), None)
        surface = FakeSurface(target, snapshots, error)
        self.created.append(surface)
        self.open_surfaces.add(id(surface))
        self.max_open = max(self.max_open, len(self.open_surfaces))
        return surface

    async def release_surface(self, surface: FakeSurface) -> None:
        self.released.append(surface)
        self.open_surfaces.discard(id(surface))


class FailingContentSource(FakeContentSource):
    """Raises ResourceCreationFailure directly, like the browser adapter does."""

    async def create_surface(self, target: str) -> FakeSurface:
        self.targets.append(target)
        raise ResourceCreationFailure(f"browser crashed opening {target}")


class RecordingListener:
    """Progress listener that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def counts(self) -> List[int]:
        return [event.processed_count for event in self.events]

