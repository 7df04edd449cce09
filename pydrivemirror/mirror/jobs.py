"""Upload jobs and the queue that carries them to the workers."""

import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import QueueClosedError


@dataclass(frozen=True)
class UploadJob:
    """A local file to upload into an existing remote folder."""

    path: Path
    """Absolute path to the local file"""

    parent_id: str
    """ID of the remote folder the file is uploaded into"""

    size: int = 0
    """File size in bytes when the job was created"""


class JobQueue:
    """FIFO channel from one producer to many workers.

    Each job is handed to exactly one consumer. After :meth:`close`, no
    more jobs are accepted and :meth:`get` returns ``None`` once the
    remaining jobs are taken.
    """

    def __init__(self) -> None:
        self._jobs: deque[UploadJob] = deque()
        self._cond = threading.Condition()
        self._closed = False

    def put(self, job: UploadJob) -> None:
        """Add a job.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        with self._cond:
            if self._closed:
                raise QueueClosedError(f"Queue closed, cannot enqueue {job.path}")
            self._jobs.append(job)
            self._cond.notify()

    def get(self) -> Optional[UploadJob]:
        """Take the next job, blocking until one is available.

        Returns:
            The next job, or None when the queue is closed and empty
        """
        with self._cond:
            self._cond.wait_for(lambda: self._jobs or self._closed)
            if self._jobs:
                return self._jobs.popleft()
            return None

    def close(self) -> None:
        """Stop accepting jobs and wake every waiting consumer."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._jobs)
