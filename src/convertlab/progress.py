"""
Progress reporting for batch conversions.

A batch is tracked as one job whose steps are its files. Each update names
the file that was just handled and how it ended, so a callback can keep a
running per-file log next to the percentage.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .logging_config import get_logger

logger = get_logger("progress")


class ProgressStage(str, Enum):
    """Stages a batch goes through."""

    INIT = "init"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class FileOutcome:
    """How one file of a batch ended."""

    filename: str
    status: str
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ProgressInfo:
    """Snapshot of a batch in flight."""

    job_id: str
    total_files: int
    stage: ProgressStage = ProgressStage.INIT
    files_done: int = 0
    message: str = ""
    last_file: Optional[FileOutcome] = None
    failed_files: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time

    @property
    def percent_complete(self) -> float:
        if self.total_files <= 0:
            return 0.0
        return min(100.0, self.files_done * 100.0 / self.total_files)

    @property
    def is_complete(self) -> bool:
        return self.stage in (ProgressStage.COMPLETE, ProgressStage.ERROR)


# Sync or async callable receiving every update
ProgressCallback = Callable[[ProgressInfo], Any]


class ProgressReporter:
    """Keeps batch progress and forwards every change to a callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._active: dict[str, ProgressInfo] = {}
        self._lock = asyncio.Lock()

    async def start_job(
        self, job_id: str, total_files: int, message: str = "Converting"
    ) -> ProgressInfo:
        async with self._lock:
            info = ProgressInfo(job_id=job_id, total_files=total_files, message=message)
            self._active[job_id] = info
            await self._notify(info)
            return info

    async def file_done(self, job_id: str, outcome: FileOutcome) -> Optional[ProgressInfo]:
        """
        Record one finished file.

        Returns:
            Updated ProgressInfo or None if the job is unknown
        """
        async with self._lock:
            info = self._active.get(job_id)
            if info is None:
                logger.warning(f"Progress update for unknown batch: {job_id}")
                return None

            info.files_done = min(info.files_done + 1, info.total_files)
            info.stage = ProgressStage.PROCESSING
            info.last_file = outcome
            if outcome.failed:
                info.failed_files.append(outcome.filename)
            info.message = (
                f"{info.files_done}/{info.total_files} {outcome.filename}: {outcome.status}"
            )

            await self._notify(info)
            return info

    async def complete_job(
        self, job_id: str, success: bool = True, message: Optional[str] = None
    ) -> Optional[ProgressInfo]:
        """
        Mark a batch as finished and stop tracking it.

        ``success`` is about the batch loop itself; files that failed are
        listed in ``failed_files`` either way.
        """
        async with self._lock:
            info = self._active.pop(job_id, None)
            if info is None:
                logger.warning(f"Complete for unknown batch: {job_id}")
                return None

            info.stage = ProgressStage.COMPLETE if success else ProgressStage.ERROR
            if message is not None:
                info.message = message
            else:
                converted = info.files_done - len(info.failed_files)
                info.message = f"{converted} converted, {len(info.failed_files)} failed"

            await self._notify(info)
            return info

    async def _notify(self, info: ProgressInfo) -> None:
        # Called with the lock held.
        if self._callback is None:
            return
        try:
            result = self._callback(info)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Progress callback error: {e}")


class ProgressTracker:
    """Async context manager wrapping one batch's start, files and end."""

    def __init__(self, reporter: ProgressReporter, job_id: str, total_files: int):
        self._reporter = reporter
        self._job_id = job_id
        self._total_files = total_files
        self._started = False

    async def __aenter__(self) -> "ProgressTracker":
        await self._reporter.start_job(self._job_id, self._total_files)
        self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self._started:
            return
        if exc_type is not None:
            await self._reporter.complete_job(
                self._job_id, success=False, message=f"Failed: {exc_val}"
            )
        else:
            await self._reporter.complete_job(self._job_id)

    async def file_done(self, filename: str, status: str, error: Optional[str] = None) -> None:
        await self._reporter.file_done(self._job_id, FileOutcome(filename, status, error))


def create_progress_callback(prefix: str = "") -> Callable[[ProgressInfo], None]:
    """Create a callback that logs batch progress, one line per file."""

    def callback(info: ProgressInfo) -> None:
        msg = f"{prefix}{info.job_id}: {info.stage.value} - {info.percent_complete:.1f}%"
        if info.message:
            msg += f" ({info.message})"
        if info.is_complete:
            msg += f" in {info.elapsed_seconds:.2f}s"
        logger.info(msg)

        if info.stage == ProgressStage.PROCESSING and info.last_file and info.last_file.failed:
            logger.warning(f"{prefix}{info.last_file.filename}: {info.last_file.error}")

    return callback
