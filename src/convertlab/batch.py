"""Sequential batch conversion.

Files are converted one at a time in the order given. A failure is recorded
on that file's job and the loop moves on to the next file.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from .config import config
from .converters.router import ConverterRouter, router as default_router
from .file_manager import FileManager, FileOperationError
from .logging_config import (
    ConverterError,
    get_logger,
    log_conversion_complete,
    log_conversion_error,
    log_conversion_start,
)
from .models import Artifact, ConversionRequest
from .progress import ProgressReporter, ProgressTracker, create_progress_callback

logger = get_logger("batch")

# Receives each artifact; whatever it returns is kept as the job's saved location.
ArtifactSink = Callable[[Artifact], Any]


class JobStatus(str, Enum):
    """Status of a conversion job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ConversionJob:
    """One request's progress through a batch."""

    id: str
    request: ConversionRequest
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    artifact: Optional[Artifact] = None
    saved_to: Optional[Any] = None

    @property
    def filename(self) -> str:
        return self.request.filename

    def to_dict(self) -> dict:
        """Convert job to dictionary for serialization."""
        return {
            "id": self.id,
            "source": self.request.filename,
            "target_format": self.request.target_format,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
            "output": self.artifact.filename if self.artifact else None,
            "output_size": self.artifact.size if self.artifact else None,
            "saved_to": str(self.saved_to) if self.saved_to is not None else None,
        }


@dataclass
class BatchReport:
    """Outcome of a batch run, jobs in submission order."""

    jobs: list[ConversionJob]

    @property
    def succeeded(self) -> list[ConversionJob]:
        return [job for job in self.jobs if job.status == JobStatus.COMPLETED]

    @property
    def failed(self) -> list[ConversionJob]:
        return [job for job in self.jobs if job.status == JobStatus.FAILED]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def errors(self) -> dict[str, str]:
        """Error message per failed filename."""
        return {job.filename: job.error_message or "" for job in self.failed}


class BatchConverter:
    """Converts a list of requests one after another."""

    def __init__(
        self,
        router: Optional[ConverterRouter] = None,
        sink: Optional[ArtifactSink] = None,
        file_manager: Optional[FileManager] = None,
        reporter: Optional[ProgressReporter] = None,
    ):
        """
        Args:
            router: Converter router (defaults to the module-level router)
            sink: Called with each finished artifact. Defaults to writing it
                with ``file_manager``.
            file_manager: Used by the default sink
            reporter: Optional progress reporter, one step per file
        """
        self.router = router or default_router
        self.file_manager = file_manager or FileManager(
            output_dir=config.default_output_dir, min_disk_space_mb=config.min_disk_space_mb
        )
        self.sink = sink or self.file_manager.write_artifact
        self.reporter = reporter

    async def run(self, requests: Iterable[ConversionRequest]) -> BatchReport:
        """Convert every request in order and report per-file outcomes."""
        jobs = [ConversionJob(id=str(uuid.uuid4()), request=r) for r in requests]
        report = BatchReport(jobs=jobs)
        if not jobs:
            return report

        reporter = self.reporter or ProgressReporter(create_progress_callback())
        batch_id = f"batch-{uuid.uuid4().hex[:8]}"

        async with ProgressTracker(reporter, batch_id, total_files=len(jobs)) as tracker:
            for job in jobs:
                await self._run_job(job)
                await tracker.file_done(job.filename, job.status.value, job.error_message)

        logger.info(
            f"Batch finished: {len(report.succeeded)} converted, {len(report.failed)} failed"
        )
        return report

    async def _run_job(self, job: ConversionJob) -> None:
        request = job.request
        job.status = JobStatus.RUNNING
        job.started_at = datetime.now()
        log_conversion_start(logger, request.filename, request.target_format, job_id=job.id)
        started = time.monotonic()

        loop = asyncio.get_running_loop()
        try:
            job.artifact = await loop.run_in_executor(
                None,
                self.router.convert_bytes,
                request.filename,
                request.data,
                request.target_format,
                request.quality,
            )
            job.saved_to = await loop.run_in_executor(None, self.sink, job.artifact)
        except (ConverterError, FileOperationError, OSError) as e:
            job.status = JobStatus.FAILED
            job.error_message = f"Could not convert {request.filename}: {e}"
            log_conversion_error(logger, e)
        else:
            job.status = JobStatus.COMPLETED
        finally:
            job.completed_at = datetime.now()

        log_conversion_complete(
            logger,
            success=job.status == JobStatus.COMPLETED,
            duration_seconds=time.monotonic() - started,
            output_file=str(job.saved_to) if job.saved_to is not None else None,
        )


async def convert_files(
    paths: Iterable[str | Path],
    target_format: str,
    output_dir: Optional[str] = None,
    quality: Optional[str] = None,
    router: Optional[ConverterRouter] = None,
) -> BatchReport:
    """Read files from disk and convert them as one batch into ``output_dir``."""
    requests = [
        ConversionRequest(
            filename=Path(p).name,
            data=Path(p).read_bytes(),
            target_format=target_format,
            quality=quality,
        )
        for p in paths
    ]
    file_manager = FileManager(
        output_dir=output_dir or config.default_output_dir,
        min_disk_space_mb=config.min_disk_space_mb,
    )
    return await BatchConverter(router=router, file_manager=file_manager).run(requests)
