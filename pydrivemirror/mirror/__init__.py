"""Mirror pipeline - folder walk, job queue and upload workers."""

from .engine import MirrorEngine
from .jobs import JobQueue, UploadJob
from .stats import MirrorStats
from .walker import TreeWalker
from .workers import UploadWorkerPool

__all__ = [
    "MirrorEngine",
    "MirrorStats",
    "JobQueue",
    "UploadJob",
    "TreeWalker",
    "UploadWorkerPool",
]
