"""Depth-first walk of the local tree that recreates folders remotely.

The walker is the single producer of upload jobs. Each subdirectory's remote
folder is created before the walker descends into it, so every job put on
the queue references a folder that already exists.
"""

import logging
import stat
import threading
from pathlib import Path
from typing import Optional

from ..api import DriveClient
from ..config import MirrorConfig
from ..exceptions import (
    ConfigurationError,
    LocalIoError,
    MirrorError,
    OversizeSkipped,
    QueueClosedError,
)
from .jobs import JobQueue, UploadJob
from .stats import MirrorStats

logger = logging.getLogger(__name__)


class TreeWalker:
    """Walks a local directory tree and produces upload jobs.

    Examples:
        >>> walker = TreeWalker(client, queue, config)
        >>> walker.walk(Path("/home/user/Documents"), root_folder_id)
    """

    def __init__(
        self,
        client: DriveClient,
        queue: JobQueue,
        config: MirrorConfig,
        stats: Optional[MirrorStats] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize the walker.

        Args:
            client: Drive client used to create folders
            queue: Queue receiving upload jobs
            config: Run configuration (size limit, retry budget)
            stats: Counters to update (a private instance if not provided)
            cancel_event: Event that stops the walk between entries
        """
        self.client = client
        self.queue = queue
        self.config = config
        self.stats = stats or MirrorStats()
        self.cancel_event = cancel_event or threading.Event()

    def walk(self, local_dir: Path, remote_folder_id: str) -> None:
        """Mirror the contents of ``local_dir`` below ``remote_folder_id``.

        Failures below the root are logged and skipped; they never abort
        the walk. Pending directories are kept on an explicit stack, so the
        depth of the tree is not limited by the interpreter's recursion
        limit.

        Args:
            local_dir: Local directory to walk
            remote_folder_id: ID of the already-created remote folder

        Raises:
            ConfigurationError: If ``local_dir`` is not a directory
        """
        if not local_dir.is_dir():
            raise ConfigurationError(f"{local_dir} is not a directory")

        pending = [(local_dir.absolute(), remote_folder_id)]
        while pending:
            directory, folder_id = pending.pop()
            subdirectories = self._walk_directory(directory, folder_id)
            if subdirectories is None or self.cancel_event.is_set():
                logger.info("Walk cancelled in %s", directory)
                return
            # reversed so the first listed subdirectory is walked next
            pending.extend(reversed(subdirectories))

    def _walk_directory(
        self, directory: Path, folder_id: str
    ) -> Optional[list[tuple[Path, str]]]:
        """Queue the files of one directory and create its subfolders.

        Returns:
            The created subdirectories with their remote IDs, or None if
            the walk was cancelled
        """
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            error = LocalIoError(directory, f"cannot list directory ({e})")
            logger.warning("Skip folder %s", error)
            self.stats.increment(entries_skipped=1)
            return []

        subdirectories = []
        for entry in entries:
            if self.cancel_event.is_set():
                return None

            try:
                st = entry.stat()
            except OSError as e:
                error = LocalIoError(entry, f"can't read metadata ({e})")
                logger.warning("Skip %s", error)
                self.stats.increment(entries_skipped=1)
                continue

            if stat.S_ISDIR(st.st_mode):
                if entry.is_symlink():
                    # following links could loop back into the tree
                    logger.warning("Skip folder %s: symbolic link", entry)
                    self.stats.increment(entries_skipped=1)
                    continue
                subfolder_id = self._create_folder(entry, folder_id)
                if subfolder_id is not None:
                    subdirectories.append((entry, subfolder_id))
            elif stat.S_ISREG(st.st_mode):
                self._enqueue_file(entry, st.st_size, folder_id)
            else:
                logger.debug("Skip %s: not a regular file or directory", entry)
                self.stats.increment(entries_skipped=1)
        return subdirectories

    def _create_folder(self, directory: Path, parent_id: str) -> Optional[str]:
        """Create the remote folder for ``directory``.

        Returns:
            The new folder ID, or None if every attempt failed
        """
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                folder_id = self.client.create_folder(directory.name, parent_id)
            except MirrorError as e:
                if attempt + 1 < attempts:
                    logger.warning(
                        "Creating folder %s failed (attempt %d/%d): %s",
                        directory,
                        attempt + 1,
                        attempts,
                        e,
                    )
                    continue
                logger.error("Failed to create folder %s: %s", directory, e)
                self.stats.increment(folders_failed=1)
                return None

            self.stats.increment(folders_created=1)
            return folder_id
        return None

    def _enqueue_file(self, path: Path, size: int, parent_id: str) -> None:
        if size > self.config.max_file_size:
            skipped = OversizeSkipped(path, size, self.config.max_file_size)
            logger.warning("Skip file %s", skipped)
            self.stats.increment(files_oversize=1)
            return

        try:
            self.queue.put(UploadJob(path=path, parent_id=parent_id, size=size))
        except QueueClosedError as e:
            logger.error("Failed to enqueue job for %s: %s", path, e)
            self.stats.increment(entries_skipped=1)
            return

        logger.debug("Queued %s", path)
        self.stats.increment(files_queued=1)
