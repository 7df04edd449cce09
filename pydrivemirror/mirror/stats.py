"""Thread-safe counters for a mirror run."""

from __future__ import annotations

import threading
import time
from typing import Any

COUNTERS = (
    "folders_created",
    "folders_failed",
    "files_queued",
    "entries_skipped",
    "files_oversize",
    "uploads_succeeded",
    "uploads_failed",
    "bytes_uploaded",
    "token_refreshes",
)


class MirrorStats:
    """Counters updated concurrently by the walker and the upload workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters = dict.fromkeys(COUNTERS, 0)
        self._start = time.monotonic()
        self._end: float | None = None
        self.remote_root_id: str | None = None

    def increment(self, **kwargs: int) -> None:
        """Add to one or more counters.

        Raises:
            KeyError: If a counter name is unknown
        """
        with self._lock:
            for key, value in kwargs.items():
                if key not in self._counters:
                    raise KeyError(f"Unknown counter: {key}")
                self._counters[key] += value

    def set(self, **kwargs: int) -> None:
        with self._lock:
            for key, value in kwargs.items():
                if key not in self._counters:
                    raise KeyError(f"Unknown counter: {key}")
                self._counters[key] = value

    def finish(self) -> None:
        """Stop the run clock."""
        with self._lock:
            self._end = time.monotonic()

    @property
    def duration(self) -> float:
        """Elapsed seconds (until :meth:`finish` if it was called)."""
        with self._lock:
            end = self._end if self._end is not None else time.monotonic()
        return end - self._start

    def __getitem__(self, key: str) -> int:
        with self._lock:
            return self._counters[key]

    def snapshot(self) -> dict[str, Any]:
        """Get a copy of all counters plus the remote root id and duration."""
        with self._lock:
            data: dict[str, Any] = dict(self._counters)
        data["remote_root_id"] = self.remote_root_id
        data["duration"] = round(self.duration, 3)
        return data
