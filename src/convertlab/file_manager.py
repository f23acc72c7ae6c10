"""File management module with collision handling and disk space checks.

This module provides the FileManager class for handling output naming,
collision handling with auto-rename, disk space verification, and atomic
writes of converted artifacts.
"""

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .logging_config import DiskSpaceError
from .models import Artifact

logger = logging.getLogger(__name__)

MAX_COLLISIONS = 1000

# Read once; os.umask can only be queried by setting it.
_UMASK = os.umask(0)
os.umask(_UMASK)
OUTPUT_FILE_MODE = 0o666 & ~_UMASK


class FileOperationError(RuntimeError):
    """Raised when a file operation fails."""

    pass


def derive_output_name(filename: str, target_format: str, source_formats=None) -> str:
    """Replace the source extension of ``filename`` with ``target_format``.

    When ``source_formats`` is given only those extensions are replaced
    (case-insensitive); any other name keeps its extension and gets the new
    one appended. ``"IMG_0001.CR2"`` becomes ``"IMG_0001.jpg"``.
    """
    target_format = target_format.lower().strip().lstrip(".")
    if not target_format:
        raise FileOperationError("Target format cannot be empty or whitespace")

    name = Path(filename).name
    if source_formats is None:
        pattern = r"\.[^./\\]+$"
    else:
        pattern = r"\.(?:" + "|".join(re.escape(f) for f in sorted(source_formats)) + r")$"

    stem = re.sub(pattern, "", name, flags=re.IGNORECASE)
    return f"{stem}.{target_format}"


class FileManager:
    """Handles output paths and artifact writes."""

    def __init__(self, output_dir: Optional[str] = None, min_disk_space_mb: int = 100):
        """Initialize FileManager.

        Args:
            output_dir: Optional output directory. If None, uses the source file's parent
                directory (or the working directory for in-memory sources).
            min_disk_space_mb: Minimum disk space required in MB (default: 100).
        """
        self.output_dir = Path(output_dir) if output_dir else None
        self.min_disk_space_mb = min_disk_space_mb

    def resolve_output_path(self, source_path: str | Path, target_format: str) -> Path:
        """Resolve output path for an on-disk source with collision handling.

        Raises:
            FileOperationError: If the source is missing or too many collisions.
        """
        source = Path(source_path)

        if not source.exists():
            raise FileOperationError(f"Source file does not exist: {source}")

        if not source.is_file():
            raise FileOperationError(f"Source path is not a file: {source}")

        if not target_format or not isinstance(target_format, str):
            raise FileOperationError("Target format must be a non-empty string")

        out_dir = self.output_dir or source.parent
        return self._avoid_collision(out_dir / derive_output_name(source.name, target_format))

    def resolve_artifact_path(self, filename: str) -> Path:
        """Resolve where an artifact named ``filename`` should be written."""
        out_dir = self.output_dir or Path.cwd()
        return self._avoid_collision(out_dir / Path(filename).name)

    def _avoid_collision(self, output_path: Path) -> Path:
        if output_path.exists():
            stem, suffix = output_path.stem, output_path.suffix
            counter = 1
            while True:
                candidate = output_path.with_name(f"{stem}_{counter}{suffix}")
                if not candidate.exists():
                    logger.debug(f"Collision detected, using renamed path: {candidate}")
                    output_path = candidate
                    break
                counter += 1
                if counter > MAX_COLLISIONS:
                    raise FileOperationError(
                        f"Too many file collisions for {output_path}. "
                        "Cannot find available output path."
                    )

        logger.debug(f"Resolved output path: {output_path}")
        return output_path

    def check_disk_space(self, path: str | Path, required_mb: int | None = None) -> bool:
        """Check if there's enough disk space.

        Args:
            path: Path to check (file or directory).
            required_mb: Required disk space in MB. If None, uses min_disk_space_mb.

        Returns:
            True if enough disk space is available.

        Raises:
            DiskSpaceError: If less than the required space is free.
            FileOperationError: If path validation fails.
        """
        check_path = Path(path)

        if check_path.is_file():
            check_path = check_path.parent
        elif not check_path.is_dir():
            raise FileOperationError(f"Invalid path for disk space check: {path}")

        required = required_mb or self.min_disk_space_mb

        try:
            usage = shutil.disk_usage(check_path)
            free_mb = usage.free / (1024 * 1024)
        except OSError as e:
            raise FileOperationError(f"Failed to check disk space for {check_path}: {e}") from e

        if free_mb < required:
            raise DiskSpaceError(
                f"Insufficient disk space: {free_mb:.1f}MB free, {required}MB required",
                technical_details=f"{check_path}: {usage.free} of {usage.total} bytes free",
                suggestion="Free up space or choose another output directory",
            )

        logger.debug(f"Disk space check passed: {free_mb:.1f}MB free at {check_path}")
        return True

    def write_artifact(self, artifact: Artifact, dest: Optional[Path] = None) -> Path:
        """Write an artifact atomically and return where it landed.

        The bytes go to a temporary file next to the destination which is
        then moved into place, so a failed write never leaves a truncated
        output behind.

        Raises:
            FileOperationError: If the write fails.
            DiskSpaceError: If the destination is short on space.
        """
        dest = Path(dest) if dest is not None else self.resolve_artifact_path(artifact.filename)
        dest.parent.mkdir(parents=True, exist_ok=True)
        self.check_disk_space(dest.parent)

        fd, tmp_name = tempfile.mkstemp(prefix=".convertlab_", dir=dest.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(artifact.data)
            # mkstemp creates 0600 files
            os.chmod(tmp_name, OUTPUT_FILE_MODE)
            os.replace(tmp_name, dest)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise FileOperationError(f"Failed to write {dest}: {e}") from e

        logger.info(f"Wrote {artifact.size} bytes to {dest}")
        return dest
