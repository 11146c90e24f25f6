"""
Progress channel: best-effort publish/subscribe for ProgressEvents.

Delivery is fire-and-forget. Publishing with no listener is a no-op, a
failing listener is logged and skipped, and nothing is retried. Core behavior
never depends on delivery succeeding.
"""

from __future__ import annotations

from typing import Callable, Dict, Hashable, List

import structlog

from .protocols import ProgressEvent

logger = structlog.get_logger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class ProgressChannel:
    """Fan-out of progress events to zero or more listeners."""

    def __init__(self) -> None:
        self._listeners: List[ProgressListener] = []

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: ProgressListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: ProgressEvent) -> None:
        """Deliver event to every current listener; never raises."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.debug(
                    "Progress listener failed",
                    job_id=event.job_id,
                    listener=getattr(listener, "__name__", type(listener).__name__),
                    error=str(e),
                )


class ProgressBoard:
    """
    Listener keeping the latest event per job id.

    Re-delivery of an event for the same job replaces the earlier one, so
    duplicates and out-of-order delivery render idempotently.
    """

    def __init__(self) -> None:
        self.latest: Dict[Hashable, ProgressEvent] = {}
        self.processed = 0
        self.total = 0

    def __call__(self, event: ProgressEvent) -> None:
        self.latest[event.job_id] = event
        self.processed = max(self.processed, event.processed_count)
        self.total = event.total

    @property
    def done(self) -> bool:
        return self.total > 0 and self.processed >= self.total

    def newest_first(self) -> List[ProgressEvent]:
        return sorted(self.latest.values(), key=lambda e: e.processed_count, reverse=True)
