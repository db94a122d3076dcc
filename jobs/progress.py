"""
Progress state, its broadcaster and the single-job guard.

A ProgressReporter is created when a job starts and owns that job's
ProgressState. Every change publishes a full snapshot through the
ProgressBroadcaster, which fans it out to one bounded queue per observer
(the SSE stream reads from those queues). An observer whose queue is full
has stopped reading and is dropped.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class ProgressState:
    current: int = 0
    total: int = 0
    percent: int = 0
    labels: List[str] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)
    complete: bool = False
    error: bool = False
    message: str = ""
    report_file: str = ""
    summary_row_count: int = 0
    raw_row_count: int = 0

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready copy using the field names observers expect."""
        return {
            "current": self.current,
            "total": self.total,
            "percent": self.percent,
            "labels": list(self.labels),
            "counts": list(self.counts),
            "complete": self.complete,
            "error": self.error,
            "message": self.message,
            "reportFile": self.report_file,
            "summaryRowCount": self.summary_row_count,
            "rawRowCount": self.raw_row_count,
        }


class ProgressBroadcaster:
    """Publish/subscribe registry for progress snapshots."""

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._subscribers: Set[queue.Queue] = set()
        self._lock = threading.Lock()
        self._latest: Dict[str, Any] = ProgressState().snapshot()

    @property
    def latest(self) -> Dict[str, Any]:
        return self._latest

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self.queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers.discard(q)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            self._latest = snapshot
            subscribers = list(self._subscribers)
        for q in subscribers:
            try:
                q.put_nowait(snapshot)
            except queue.Full:
                logger.info("Dropping progress observer that stopped reading.")
                self.unsubscribe(q)


class ProgressReporter:
    """Mutates one job's ProgressState and publishes every change."""

    def __init__(self, broadcaster: Optional[ProgressBroadcaster] = None) -> None:
        self.state = ProgressState()
        self.broadcaster = broadcaster

    def _publish(self) -> None:
        if self.broadcaster is not None:
            self.broadcaster.publish(self.state.snapshot())

    def reset(self) -> None:
        self.state = ProgressState()
        self._publish()

    def set_total(self, total: int) -> None:
        s = self.state
        s.total = total
        s.percent = round(s.current / total * 100) if total else 0
        self._publish()

    def update(self, label: str, count: int, message: str = "") -> None:
        """Record one processed file."""
        s = self.state
        s.current += 1
        s.labels.append(label)
        s.counts.append(count)
        s.percent = min(100, round(s.current / s.total * 100)) if s.total else 0
        if message:
            s.message = message
        self._publish()

    def mark_done(
        self,
        ok: bool = True,
        message: str = "",
        report_file: Optional[str] = None,
        summary_row_count: Optional[int] = None,
        raw_row_count: Optional[int] = None,
    ) -> None:
        s = self.state
        s.complete = True
        s.error = not ok
        if message:
            s.message = message
        if report_file is not None:
            s.report_file = report_file
        if summary_row_count is not None:
            s.summary_row_count = summary_row_count
        if raw_row_count is not None:
            s.raw_row_count = raw_row_count
        self._publish()


class JobGuard:
    """Admits one job at a time; a second request is refused, not queued."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def try_acquire(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._running = True
            return True

    def release(self) -> None:
        with self._lock:
            self._running = False
