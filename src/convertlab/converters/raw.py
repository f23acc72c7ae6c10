"""
Raw photo converter.

Pulls the embedded JPEG preview out of Canon CR2 and Nikon NEF files.
No demosaicing happens here: the output is the camera's own preview.
"""

import asyncio
from pathlib import Path
from typing import Optional

from ..config import config
from ..file_manager import FileManager
from ..logging_config import FormatNotSupportedError, get_logger
from ..models import Artifact, ContainerKind
from ..rawpreview import extract_preview, inspect_preview

logger = get_logger("converters.raw")

SUPPORTED_INPUT_FORMATS = {"cr2", "nef"}
SUPPORTED_OUTPUT_FORMATS = {"jpg", "jpeg"}


class RawConverter:
    """Extract JPEG previews from raw photo containers."""

    def __init__(
        self,
        file_manager: Optional[FileManager] = None,
        stop_at_eoi: Optional[bool] = None,
    ):
        self.file_manager = file_manager or FileManager()
        self.stop_at_eoi = config.stop_preview_at_eoi if stop_at_eoi is None else stop_at_eoi

    @staticmethod
    def is_format_supported(format_name: str, for_output: bool = False) -> bool:
        """Check if a format is supported."""
        format_lower = format_name.lower()
        if for_output:
            return format_lower in SUPPORTED_OUTPUT_FORMATS
        return format_lower in SUPPORTED_INPUT_FORMATS

    @staticmethod
    def get_supported_formats() -> tuple[set, set]:
        """Get supported input and output formats."""
        return SUPPORTED_INPUT_FORMATS.copy(), SUPPORTED_OUTPUT_FORMATS.copy()

    def convert_bytes(self, filename: str, data: bytes, target_format: str = "jpg") -> Artifact:
        """
        Extract the preview from an in-memory raw file.

        Raises:
            FormatNotSupportedError: If the file is not CR2/NEF or the target is not JPEG
            NoPreviewFoundError: If the container holds no JPEG preview
        """
        target_format = target_format.lower()
        if not self.is_format_supported(target_format, for_output=True):
            raise FormatNotSupportedError(
                f"Output format '{target_format}' is not supported",
                suggestion="Raw previews can only be saved as jpg",
            )

        kind = ContainerKind.from_filename(filename)
        preview = extract_preview(data, kind, source_name=filename, stop_at_eoi=self.stop_at_eoi)
        artifact = preview.to_artifact()

        if target_format == "jpeg":
            artifact = Artifact(
                filename=artifact.filename[: -len(".jpg")] + ".jpeg",
                data=artifact.data,
                mime_type=artifact.mime_type,
            )
        return artifact

    async def convert(
        self,
        source_path: str | Path,
        target_format: str = "jpg",
        output_path: Optional[Path] = None,
        quality: Optional[str] = None,
    ) -> Path:
        """
        Extract the preview of a raw file on disk.

        ``quality`` is accepted for router symmetry; the preview is copied
        byte for byte, never re-encoded.

        Returns:
            Path to the written JPEG
        """
        source = Path(source_path)
        target_format = target_format.lower()

        if not self.is_format_supported(target_format, for_output=True):
            raise FormatNotSupportedError(
                f"Output format '{target_format}' is not supported",
                suggestion="Raw previews can only be saved as jpg",
            )

        if output_path is None:
            output_path = self.file_manager.resolve_output_path(source, target_format)

        loop = asyncio.get_running_loop()
        artifact = await loop.run_in_executor(
            None, lambda: self.convert_bytes(source.name, source.read_bytes(), target_format)
        )
        result = await loop.run_in_executor(
            None, self.file_manager.write_artifact, artifact, output_path
        )

        logger.info(f"Extracted preview {source} -> {result}")
        return result

    async def get_preview_info(self, source_path: str | Path) -> dict:
        """
        Describe the embedded preview of a raw file.

        Returns:
            Dictionary with the preview's offset, length and image information
        """
        source = Path(source_path)

        def _get_info():
            data = source.read_bytes()
            preview = extract_preview(
                data,
                ContainerKind.from_filename(source.name),
                source_name=source.name,
                stop_at_eoi=self.stop_at_eoi,
            )
            info = inspect_preview(preview.to_bytes())
            info.update({"offset": preview.start, "length": preview.length})
            return info

        return await asyncio.get_running_loop().run_in_executor(None, _get_info)
