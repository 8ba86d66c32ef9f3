"""In-process request metrics.

One ``MetricsCollector`` is created per application and stored on
``app.state.metrics``; the request middleware feeds it. Recent requests are
kept in a bounded ring buffer.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class RequestSample:
    """One completed request."""

    timestamp: float
    method: str
    path: str
    status_code: int
    duration_ms: float


class MetricsCollector:
    """Request counters plus a bounded history of recent requests."""

    def __init__(self, history_size: int = 500):
        self.history_size = max(1, int(history_size))
        self._history: deque[RequestSample] = deque(maxlen=self.history_size)
        self._lock = threading.Lock()
        self._started = time.monotonic()

        self.request_count = 0
        self.error_count = 0
        self.total_duration_ms = 0.0
        self.max_duration_ms = 0.0
        self.min_duration_ms: float | None = None

    def record(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        sample = RequestSample(
            timestamp=time.time(),
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        with self._lock:
            self.request_count += 1
            if status_code >= 500:
                self.error_count += 1
            self.total_duration_ms += duration_ms
            self.max_duration_ms = max(self.max_duration_ms, duration_ms)
            if self.min_duration_ms is None or duration_ms < self.min_duration_ms:
                self.min_duration_ms = duration_ms
            self._history.append(sample)

    def recent(self, limit: int | None = None) -> list[RequestSample]:
        with self._lock:
            items = list(self._history)
        if limit is not None:
            items = items[-limit:]
        return items

    def snapshot(self, history_limit: int = 100) -> dict[str, Any]:
        """Metrics ready for the API."""
        with self._lock:
            count = self.request_count
            errors = self.error_count
            total = self.total_duration_ms
            max_ms = self.max_duration_ms
            min_ms = self.min_duration_ms
        avg = total / count if count else 0.0
        return {
            "uptime_seconds": round(time.monotonic() - self._started, 1),
            "request_count": count,
            "error_count": errors,
            "error_rate": round(errors / count * 100, 2) if count else 0.0,
            "avg_response_ms": round(avg, 2),
            "max_response_ms": round(max_ms, 2),
            "min_response_ms": round(min_ms, 2) if min_ms is not None else 0.0,
            "history_size": self.history_size,
            "recent": [asdict(s) for s in self.recent(history_limit)],
        }
