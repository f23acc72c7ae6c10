"""Tests for sequential batch conversion."""

import logging
from unittest.mock import MagicMock

import pytest

from convertlab.batch import (
    BatchConverter,
    BatchReport,
    ConversionJob,
    JobStatus,
    convert_files,
)
from convertlab.converters.router import ConverterRouter
from convertlab.file_manager import FileManager
from convertlab.models import ConversionRequest
from convertlab.progress import ProgressReporter, ProgressStage

from conftest import make_raw_container


@pytest.fixture
def collected():
    return []


@pytest.fixture
def batch(collected):
    def sink(artifact):
        collected.append(artifact)
        return artifact.filename

    return BatchConverter(router=ConverterRouter(), sink=sink)


class TestConversionJob:
    """Tests for ConversionJob class."""

    def test_job_creation(self):
        job = ConversionJob(id="job-1", request=ConversionRequest("a.cr2", b"", "jpg"))

        assert job.status == JobStatus.QUEUED
        assert job.filename == "a.cr2"
        assert job.artifact is None

    def test_job_to_dict(self):
        job = ConversionJob(id="job-2", request=ConversionRequest("a.wav", b"", "mp3"))

        data = job.to_dict()

        assert data["id"] == "job-2"
        assert data["status"] == "queued"
        assert data["target_format"] == "mp3"
        assert data["output"] is None
        assert "created_at" in data

    def test_job_status_values(self):
        assert JobStatus.QUEUED.value == "queued"
        assert JobStatus.RUNNING.value == "running"
        assert JobStatus.COMPLETED.value == "completed"
        assert JobStatus.FAILED.value == "failed"


class TestBatchConverter:
    """Tests for BatchConverter."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, batch):
        report = await batch.run([])

        assert report.jobs == []
        assert report.all_succeeded

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_batch(self, batch, collected, raw_container):
        requests = [
            ConversionRequest("first.cr2", raw_container, "jpg"),
            ConversionRequest("broken.nef", bytes(2048), "jpg"),
            ConversionRequest("third.nef", raw_container, "jpg"),
        ]

        report = await batch.run(requests)

        assert [job.status for job in report.jobs] == [
            JobStatus.COMPLETED,
            JobStatus.FAILED,
            JobStatus.COMPLETED,
        ]
        assert [a.filename for a in collected] == ["first.jpg", "third.jpg"]
        assert not report.all_succeeded
        assert list(report.errors()) == ["broken.nef"]
        assert "Could not convert broken.nef" in report.errors()["broken.nef"]

    @pytest.mark.asyncio
    async def test_jobs_record_results(self, batch, raw_container):
        report = await batch.run([ConversionRequest("x.cr2", raw_container, "jpg")])

        job = report.succeeded[0]
        assert job.saved_to == "x.jpg"
        assert job.started_at is not None
        assert job.completed_at >= job.started_at
        assert job.to_dict()["output_size"] == job.artifact.size

    @pytest.mark.asyncio
    async def test_unsupported_format_is_per_file(self, batch, raw_container):
        report = await batch.run(
            [
                ConversionRequest("notes.txt", b"hello", "mp3"),
                ConversionRequest("ok.cr2", raw_container, "jpg"),
            ]
        )

        assert report.failed[0].filename == "notes.txt"
        assert report.succeeded[0].filename == "ok.cr2"

    @pytest.mark.asyncio
    async def test_sink_failure_marks_job_failed(self, raw_container):
        sink = MagicMock(side_effect=OSError("disk full"))
        batch = BatchConverter(router=ConverterRouter(), sink=sink)

        report = await batch.run([ConversionRequest("x.cr2", raw_container, "jpg")])

        assert report.failed[0].artifact is not None
        assert "disk full" in report.failed[0].error_message

    @pytest.mark.asyncio
    async def test_files_processed_in_order(self, raw_container):
        seen = []
        router = MagicMock()
        router.convert_bytes.side_effect = lambda name, *args: seen.append(name) or MagicMock()
        batch = BatchConverter(router=router, sink=lambda artifact: None)

        await batch.run([ConversionRequest(f"{i}.cr2", raw_container, "jpg") for i in range(5)])

        assert seen == ["0.cr2", "1.cr2", "2.cr2", "3.cr2", "4.cr2"]

    @pytest.mark.asyncio
    async def test_progress_reported_per_file(self, raw_container):
        updates = []
        reporter = ProgressReporter(
            callback=lambda info: updates.append((info.stage, info.percent_complete))
        )
        batch = BatchConverter(router=ConverterRouter(), sink=lambda a: None, reporter=reporter)

        await batch.run(
            [
                ConversionRequest("a.cr2", raw_container, "jpg"),
                ConversionRequest("b.cr2", raw_container, "jpg"),
            ]
        )

        assert updates[0][0] == ProgressStage.INIT
        assert (ProgressStage.PROCESSING, 50.0) in updates
        assert updates[-1] == (ProgressStage.COMPLETE, 100.0)

    @pytest.mark.asyncio
    async def test_progress_carries_file_outcomes(self, raw_container):
        seen = []
        reporter = ProgressReporter(callback=lambda info: seen.append(info.last_file))
        batch = BatchConverter(router=ConverterRouter(), sink=lambda a: None, reporter=reporter)

        await batch.run(
            [
                ConversionRequest("good.cr2", raw_container, "jpg"),
                ConversionRequest("bad.nef", bytes(256), "jpg"),
            ]
        )

        good, bad = seen[1], seen[2]
        assert (good.filename, good.status, good.error) == ("good.cr2", "completed", None)
        assert bad.filename == "bad.nef"
        assert bad.status == "failed"
        assert bad.error.startswith("Could not convert bad.nef")

    @pytest.mark.asyncio
    async def test_default_reporter_logs_failures(self, caplog):
        batch = BatchConverter(router=ConverterRouter(), sink=lambda a: None)

        with caplog.at_level(logging.INFO, logger="convertlab.progress"):
            await batch.run([ConversionRequest("bad.cr2", bytes(256), "jpg")])

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].startswith("bad.cr2: Could not convert bad.cr2")
        assert "0 converted, 1 failed" in caplog.text


class TestConvertFiles:
    """Tests for the on-disk batch helper."""

    @pytest.mark.asyncio
    async def test_writes_outputs(self, tmp_path, jpeg_bytes, monkeypatch):
        sources = []
        for name in ("IMG_1.CR2", "DSC_2.nef"):
            path = tmp_path / name
            path.write_bytes(make_raw_container(jpeg_bytes))
            sources.append(path)
        out_dir = tmp_path / "out"
        monkeypatch.setattr("convertlab.batch.config.min_disk_space_mb", 1)

        report = await convert_files(sources, "jpg", output_dir=str(out_dir))

        assert isinstance(report, BatchReport)
        assert report.all_succeeded
        assert sorted(p.name for p in out_dir.iterdir()) == ["DSC_2.jpg", "IMG_1.jpg"]
        assert (out_dir / "IMG_1.jpg").read_bytes() == jpeg_bytes

    @pytest.mark.asyncio
    async def test_name_collisions_are_renamed(self, tmp_path, raw_container):
        out_dir = tmp_path / "out"
        batch = BatchConverter(
            router=ConverterRouter(),
            file_manager=FileManager(output_dir=str(out_dir), min_disk_space_mb=1),
        )

        report = await batch.run(
            [
                ConversionRequest("IMG_1.cr2", raw_container, "jpg"),
                ConversionRequest("IMG_1.nef", raw_container, "jpg"),
            ]
        )

        assert [job.saved_to.name for job in report.jobs] == ["IMG_1.jpg", "IMG_1_1.jpg"]
