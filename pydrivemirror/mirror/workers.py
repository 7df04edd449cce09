"""Fixed-size pool of upload worker threads."""

import logging
import threading
import time
from typing import Optional

from ..api import DriveClient
from ..config import MirrorConfig
from ..exceptions import ConfigurationError, MirrorError
from .jobs import JobQueue, UploadJob
from .stats import MirrorStats

logger = logging.getLogger(__name__)


class UploadWorkerPool:
    """Threads that take jobs from a :class:`JobQueue` and upload them.

    Workers share only the queue, the drive client and its credential
    store. A failed job is logged and dropped (after ``max_retries`` extra
    attempts) and never affects other jobs. Workers return once the queue is
    closed and empty, or before the next job once cancellation is requested.
    """

    def __init__(
        self,
        client: DriveClient,
        queue: JobQueue,
        config: MirrorConfig,
        stats: Optional[MirrorStats] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize the pool without starting any thread.

        Args:
            client: Shared drive client
            queue: Queue to consume
            config: Run configuration (worker count, retry budget)
            stats: Counters to update (a private instance if not provided)
            cancel_event: Event that stops workers between jobs

        Raises:
            ConfigurationError: If the worker count is below one
        """
        if config.worker_count < 1:
            raise ConfigurationError(
                f"worker_count must be at least 1, got {config.worker_count}"
            )
        self.client = client
        self.queue = queue
        self.config = config
        self.stats = stats or MirrorStats()
        self.cancel_event = cancel_event or threading.Event()
        self._threads: list[threading.Thread] = []
        self._active_lock = threading.Lock()
        self._active_jobs = 0

    def start(self) -> None:
        """Start all worker threads.

        Raises:
            RuntimeError: If the pool was already started
        """
        if self._threads:
            raise RuntimeError("Worker pool already started")

        for index in range(self.config.worker_count):
            thread = threading.Thread(
                target=self._run,
                name=f"upload-worker-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()
        logger.debug("Started %d upload workers", len(self._threads))

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for every worker to return.

        Args:
            timeout: Maximum seconds to wait for all workers, or None to wait
                until the pool has drained

        Returns:
            True if all workers have finished
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return not self.alive

    @property
    def alive(self) -> int:
        """Number of worker threads still running."""
        return sum(1 for thread in self._threads if thread.is_alive())

    @property
    def active_jobs(self) -> int:
        """Number of jobs currently being uploaded."""
        with self._active_lock:
            return self._active_jobs

    def _run(self) -> None:
        while not self.cancel_event.is_set():
            job = self.queue.get()
            if job is None:
                break
            if self.cancel_event.is_set():
                logger.debug("Cancelled, dropping %s", job.path)
                break

            with self._active_lock:
                self._active_jobs += 1
            try:
                self._process(job)
            except Exception:
                # one broken job must not take the worker down
                logger.exception("Unexpected error uploading %s", job.path)
                self.stats.increment(uploads_failed=1)
            finally:
                with self._active_lock:
                    self._active_jobs -= 1

        logger.debug("%s finished", threading.current_thread().name)

    def _process(self, job: UploadJob) -> None:
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                self.client.upload_file(job.path, job.parent_id)
            except MirrorError as e:
                if attempt + 1 < attempts and not self.cancel_event.is_set():
                    logger.warning(
                        "Upload of %s failed (attempt %d/%d): %s",
                        job.path,
                        attempt + 1,
                        attempts,
                        e,
                    )
                    continue
                logger.error("Failed to upload %s: %s", job.path, e)
                self.stats.increment(uploads_failed=1)
                return

            logger.debug("Uploaded %s", job.path)
            self.stats.increment(uploads_succeeded=1, bytes_uploaded=job.size)
            return
