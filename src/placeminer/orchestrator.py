"""
Job orchestration for PlaceMiner.

One run processes an ordered queue of WorkItems strictly one at a time:

    Dispatching -> AcquiringSurface -> WaitingReady -> Extracting
        -> Reporting -> ReleasingSurface -> (next Dispatching | Idle)

Every job produces exactly one ProgressEvent. Job failures are converted into
failed ResultRecords and never abort the run; the surface is released on
every exit path.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple
from uuid import uuid4

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)
from tenacity.stop import stop_base

from .config.config import OrchestratorSettings
from .errors import (
    Busy,
    ExtractionError,
    JobError,
    NotFound,
    ResourceCreationFailure,
    TimeoutWaitingForReady,
)
from .extractor import ExtractionEngine
from .observability import gauge, increment, observe
from .progress import ProgressChannel
from .protocols import (
    ContactFields,
    ContentSource,
    ExtractionOutcome,
    Failed,
    FailureKind,
    JobPhase,
    NotReady,
    ProgressEvent,
    Ready,
    RenderSurface,
    ResultRecord,
    RunState,
    StartResult,
    WorkItem,
)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]

STATUS_FOUND = "Found"
STATUS_NOT_FOUND = "Not found"
STATUS_ERROR = "Error"


class stop_at_deadline(stop_base):
    """Stop retrying once an injectable clock passes a deadline."""

    def __init__(self, clock: Clock, deadline: float) -> None:
        self.clock = clock
        self.deadline = deadline

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.clock() >= self.deadline


def build_query(item: WorkItem, separator: str = ", ") -> str:
    """Join company, city (when present) and country."""
    parts = [item.company]
    if item.city and item.city.strip():
        parts.append(item.city)
    parts.append(item.country)
    return separator.join(parts)


class Orchestrator:
    """
    Sequential job orchestrator with a single RunState guard.

    Each instance owns its own run state and queue, so independent
    orchestrators can coexist and tests can inject a fake clock and sleep.
    """

    def __init__(
        self,
        source: ContentSource,
        engine: Optional[ExtractionEngine] = None,
        settings: Optional[OrchestratorSettings] = None,
        channel: Optional[ProgressChannel] = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.source = source
        self.engine = engine or ExtractionEngine()
        self.settings = settings or OrchestratorSettings()
        self.channel = channel or ProgressChannel()
        self._clock = clock
        self._sleep = sleep
        self.logger = structlog.get_logger(self.__class__.__name__)

        # Run state
        self.state = RunState.IDLE
        self.run_id: Optional[str] = None
        self.processed_count = 0
        self.total = 0
        self.phase: Optional[JobPhase] = None
        self.current_job: Optional[WorkItem] = None
        self._queue: Optional[Tuple[WorkItem, ...]] = None
        self._results: List[ResultRecord] = []
        self._task: Optional[asyncio.Task[None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    @property
    def queue(self) -> Optional[Tuple[WorkItem, ...]]:
        """The active run's queue, or None when idle."""
        return self._queue

    @property
    def results(self) -> List[ResultRecord]:
        """Records accumulated by the current or last run, in completion order."""
        return list(self._results)

    def start(self, items: Sequence[WorkItem]) -> StartResult:
        """
        Begin processing items in the background.

        Returns BUSY without touching any state when a run is active. Must be
        called from within a running event loop; does not wait for the run.
        """
        loop = asyncio.get_running_loop()

        if self.state is not RunState.IDLE:
            self.logger.warning("Run rejected: orchestrator busy", run_id=self.run_id, requested=len(items))
            return StartResult.BUSY

        # No await between the Idle check and these assignments.
        self.state = RunState.RUNNING
        self._queue = tuple(items)
        self.run_id = str(uuid4())
        self.total = len(self._queue)
        self.processed_count = 0
        self._results = []
        self._task = loop.create_task(self._run_queue(self._queue), name=f"placeminer-run-{self.run_id}")

        self.logger.info("Run accepted", run_id=self.run_id, total=self.total)
        return StartResult.ACCEPTED

    async def wait(self) -> List[ResultRecord]:
        """Wait for the active run (if any) to finish and return its records."""
        if self._task is not None:
            await self._task
        return self.results

    async def run(self, items: Sequence[WorkItem]) -> List[ResultRecord]:
        """Start a run and wait for it. Raises Busy when a run is active."""
        if self.start(items) is StartResult.BUSY:
            raise Busy(f"run {self.run_id} is still active")
        return await self.wait()

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def _run_queue(self, queue: Tuple[WorkItem, ...]) -> None:
        structlog.contextvars.bind_contextvars(run_id=self.run_id)
        started = self._clock()
        try:
            for index, item in enumerate(queue):
                await self._process_item(item)

                if index < len(queue) - 1 and self.settings.politeness_delay > 0:
                    await self._sleep(self.settings.politeness_delay)
        finally:
            self.logger.info(
                "Run finished",
                processed=self.processed_count,
                total=self.total,
                duration=self._clock() - started,
            )
            self.phase = None
            self.current_job = None
            self._queue = None
            self.state = RunState.IDLE
            structlog.contextvars.unbind_contextvars("run_id")

    async def _process_item(self, item: WorkItem) -> None:
        """Drive one job through its state machine. Never raises JobError."""
        started = self._clock()
        self.current_job = item
        surface: Optional[RenderSurface] = None
        polls = 0

        try:
            try:
                self.phase = JobPhase.DISPATCHING
                query = build_query(item, self.settings.query_separator)
                self.logger.info("Job dispatched", job_id=item.id, query=query)

                surface = await self._acquire(query)

                self.phase = JobPhase.WAITING_READY
                outcome, polls = await self._wait_ready(surface)

                self.phase = JobPhase.EXTRACTING
                fields = self._finalize(outcome)

                record = ResultRecord.from_fields(item, fields)

            except JobError as e:
                if isinstance(e, TimeoutWaitingForReady):
                    polls = e.attempts
                self._fail(item, e)
            except Exception as e:
                # Collaborator fault outside the classified phases.
                self._fail(item, ExtractionError(f"{type(e).__name__}: {e}", cause=e))
            else:
                # Unguarded: a fault here must not add a second event for this job.
                self._report(item, record, success=True, status=STATUS_FOUND)
                increment("jobs_total", labels={"outcome": "found"})
        finally:
            if surface is not None:
                self.phase = JobPhase.RELEASING_SURFACE
                await self._release(surface)
            observe("ready_polls", polls)
            observe("job_duration_seconds", self._clock() - started)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _acquire(self, query: str) -> RenderSurface:
        self.phase = JobPhase.ACQUIRING_SURFACE
        try:
            target = self.source.build_target(query)
            surface = await asyncio.wait_for(
                self.source.create_surface(target),
                timeout=self.settings.acquire_timeout,
            )
        except ResourceCreationFailure:
            raise
        except asyncio.TimeoutError as e:
            raise ResourceCreationFailure(
                f"surface not created within {self.settings.acquire_timeout}s", cause=e
            ) from e
        except Exception as e:
            raise ResourceCreationFailure(f"surface could not be created: {e}", cause=e) from e

        gauge("surfaces_open", 1)
        self.logger.debug("Surface acquired", target=surface.target)
        return surface

    async def _wait_ready(self, surface: RenderSurface) -> Tuple[ExtractionOutcome, int]:
        """Poll the engine until Ready/Failed, bounded by attempts and wall clock."""
        attempts = 0
        waiting_since = self._clock()
        deadline = waiting_since + self.settings.ready_timeout

        async def poll() -> ExtractionOutcome:
            nonlocal attempts
            attempts += 1
            try:
                return await asyncio.wait_for(self.engine.extract(surface), timeout=self.settings.extract_timeout)
            except asyncio.TimeoutError:
                # wait_for only cancels the awaiting future; a parse already running in the
                # executor thread is abandoned and finishes on its own.
                self.logger.warning(
                    "Extraction timed out, abandoning parse thread",
                    attempt=attempts,
                    timeout=self.settings.extract_timeout,
                )
                return Failed(detail=f"extraction did not finish within {self.settings.extract_timeout}s")

        def log_not_ready(retry_state: RetryCallState) -> None:
            self.logger.debug(
                "Surface not ready",
                attempt=retry_state.attempt_number,
                max_attempts=self.settings.max_poll_attempts,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_poll_attempts) | stop_at_deadline(self._clock, deadline),
            wait=self._poll_wait(),
            retry=retry_if_result(lambda outcome: isinstance(outcome, NotReady)),
            before_sleep=log_not_ready,
            sleep=self._sleep,
        )

        try:
            outcome = await retrying(poll)
        except RetryError as e:
            raise TimeoutWaitingForReady(
                f"surface not ready after {attempts} polls",
                attempts=attempts,
                elapsed=self._clock() - waiting_since,
            ) from e
        except Exception as e:
            raise ExtractionError(f"{type(e).__name__}: {e}", cause=e) from e

        return outcome, attempts

    def _poll_wait(self):
        if self.settings.backoff == "exponential":
            return wait_exponential(
                multiplier=self.settings.poll_interval,
                min=self.settings.poll_interval,
                max=self.settings.max_poll_interval,
            )
        return wait_fixed(self.settings.poll_interval)

    def _finalize(self, outcome: ExtractionOutcome) -> ContactFields:
        """Ready fields pass through untouched; anything else is a job error."""
        if isinstance(outcome, Failed):
            raise ExtractionError(outcome.detail)
        if not isinstance(outcome, Ready):
            raise ExtractionError(f"unexpected outcome {outcome!r}")
        if not outcome.fields.name:
            raise NotFound("surface ready but no identifying name")
        return outcome.fields

    def _fail(self, item: WorkItem, error: JobError) -> None:
        status = STATUS_NOT_FOUND if error.kind is FailureKind.NOT_FOUND else STATUS_ERROR
        self.logger.warning(
            "Job failed",
            job_id=item.id,
            company=item.company,
            kind=error.kind.value,
            error=str(error),
        )
        self._report(item, ResultRecord.failed(item), success=False, status=status, error_detail=error.detail)
        increment("jobs_total", labels={"outcome": error.kind.value})

    def _report(
        self,
        item: WorkItem,
        record: ResultRecord,
        *,
        success: bool,
        status: str,
        error_detail: Optional[str] = None,
    ) -> None:
        self.phase = JobPhase.REPORTING
        self.processed_count += 1
        self._results.append(record)

        event = ProgressEvent(
            job_id=item.id,
            processed_count=self.processed_count,
            total=self.total,
            success=success,
            status=status,
            record=record,
            error_detail=error_detail,
        )
        if success:
            self.logger.info("Job finished", job_id=item.id, processed=self.processed_count, total=self.total)

        # Fire-and-forget; delivery problems never reach the job outcome.
        try:
            self.channel.publish(event)
        except Exception as e:
            self.logger.debug("Progress publish failed", job_id=item.id, error=str(e))

    async def _release(self, surface: RenderSurface) -> None:
        try:
            await self.source.release_surface(surface)
            self.logger.debug("Surface released", target=surface.target)
        except Exception as e:
            self.logger.debug("Surface release failed", target=surface.target, error=str(e))
        finally:
            gauge("surfaces_open", -1)
