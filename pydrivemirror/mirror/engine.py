"""Orchestration of a complete mirror run."""

import logging
import threading
from typing import Optional

from ..api import DriveClient
from ..auth import CredentialStore
from ..config import MirrorConfig
from ..exceptions import AuthError, ConfigurationError, MalformedResponse
from .jobs import JobQueue
from .stats import MirrorStats
from .walker import TreeWalker
from .workers import UploadWorkerPool

logger = logging.getLogger(__name__)


class MirrorEngine:
    """Mirrors a local directory into a newly created remote folder.

    Every call to :meth:`run` creates a fresh remote root folder, so running
    twice against the same tree produces two independent copies.

    Examples:
        >>> with DriveClient(config, CredentialStore()) as client:
        ...     stats = MirrorEngine(config, client).run()
        >>> stats["uploads_succeeded"]
        42
    """

    def __init__(
        self,
        config: MirrorConfig,
        client: Optional[DriveClient] = None,
    ):
        """Initialize the engine.

        Args:
            config: Run configuration
            client: Drive client to use (created from ``config`` if not
                provided)
        """
        self.config = config
        self.client = client or DriveClient(config, CredentialStore())
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Request the walk and the workers to stop as soon as possible."""
        if not self._cancel_event.is_set():
            logger.info("Cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def run(self, stats: Optional[MirrorStats] = None) -> MirrorStats:
        """Run one complete mirror.

        Startup failures (missing root directory, token exchange, remote root
        creation) propagate. Failures of individual folders and files are
        logged and counted in the returned statistics.

        Args:
            stats: Counters to fill (a new instance if not provided)

        Returns:
            Statistics for the run

        Raises:
            ConfigurationError: If the root directory does not exist
            AuthError: If the initial access token cannot be obtained
            MirrorError: If the remote root folder cannot be created
        """
        stats = stats or MirrorStats()
        root = self.config.root_directory

        if not root.is_dir():
            raise ConfigurationError(f"{root} is not a directory")

        # the initial exchange is not a refresh; only later replacements
        # are counted in token_refreshes
        store = self.client.store
        try:
            token = self.client.refresher.fetch_token()
        except MalformedResponse as e:
            raise AuthError(f"Initial token exchange failed: {e}") from e
        store.replace(token)
        refreshes_before = store.refresh_count
        logger.debug("Obtained initial access token")

        root_id = self.client.create_folder(self.config.root_folder_name)
        stats.remote_root_id = root_id
        logger.info("Created remote root %s (%s)", self.config.root_folder_name, root_id)

        queue = JobQueue()
        pool = UploadWorkerPool(
            self.client, queue, self.config, stats, self._cancel_event
        )
        walker = TreeWalker(self.client, queue, self.config, stats, self._cancel_event)

        pool.start()
        try:
            walker.walk(root, root_id)
        except KeyboardInterrupt:
            self.cancel()
            raise
        finally:
            queue.close()
            pool.join()
            stats.set(token_refreshes=store.refresh_count - refreshes_before)
            stats.finish()

        logger.info(
            "Mirror finished: %d uploaded, %d failed",
            stats["uploads_succeeded"],
            stats["uploads_failed"],
        )
        return stats
