"""
Format detection and conversion routing.

Routes conversion requests to the raw or audio converter based on the
source suffix and the target format.
"""

from pathlib import Path, PurePath
from typing import Iterable, Optional

from .audio import (
    AudioConverter,
    SUPPORTED_INPUT_FORMATS as AUD_IN,
    SUPPORTED_OUTPUT_FORMATS as AUD_OUT,
)
from .raw import (
    RawConverter,
    SUPPORTED_INPUT_FORMATS as RAW_IN,
    SUPPORTED_OUTPUT_FORMATS as RAW_OUT,
)

from ..logging_config import FormatNotSupportedError, InvalidInputError, get_logger
from ..models import Artifact

logger = get_logger("converters.router")


def source_format_of(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


def filter_supported(filenames: Iterable[str], source_formats: Iterable[str]) -> list[str]:
    """
    Keep only filenames whose suffix is one of ``source_formats``.

    Raises:
        InvalidInputError: If none of the names qualify
    """
    allowed = {f.lower() for f in source_formats}
    selected = [name for name in filenames if source_format_of(name) in allowed]
    if not selected:
        label = "/".join(sorted(f.upper() for f in allowed))
        raise InvalidInputError(f"Please select valid {label} files")
    return selected


class ConverterRouter:
    """Route conversion requests to appropriate converters."""

    def __init__(self):
        self._raw_converter: Optional[RawConverter] = None
        self._audio_converter: Optional[AudioConverter] = None

    @property
    def raw(self) -> RawConverter:
        if self._raw_converter is None:
            self._raw_converter = RawConverter()
        return self._raw_converter

    @raw.setter
    def raw(self, converter: RawConverter) -> None:
        self._raw_converter = converter

    @property
    def audio(self) -> AudioConverter:
        if self._audio_converter is None:
            self._audio_converter = AudioConverter()
        return self._audio_converter

    @audio.setter
    def audio(self, converter: AudioConverter) -> None:
        self._audio_converter = converter

    @staticmethod
    def get_converter_type(source_format: str, target_format: str) -> str:
        """
        Determine which converter to use based on formats.

        Returns:
            'raw' or 'audio', or raises error
        """
        src = source_format.lower()
        tgt = target_format.lower()

        if src in RAW_IN and tgt in RAW_OUT:
            return "raw"

        if src in AUD_IN and tgt in AUD_OUT and src != tgt:
            return "audio"

        raise FormatNotSupportedError(
            f"Conversion from '{source_format}' to '{target_format}' is not supported",
            suggestion="Check supported formats for each converter type",
        )

    def get_supported_conversions(self) -> dict:
        """Get all supported conversion paths."""
        return {
            "raw": {
                "input": sorted(RAW_IN),
                "output": sorted(RAW_OUT),
            },
            "audio": {
                "input": sorted(AUD_IN),
                "output": sorted(AUD_OUT),
            },
        }

    def is_conversion_supported(self, source_format: str, target_format: str) -> bool:
        """Check if a conversion path is supported."""
        try:
            self.get_converter_type(source_format, target_format)
            return True
        except FormatNotSupportedError:
            return False

    def convert_bytes(
        self,
        filename: str,
        data: bytes,
        target_format: str,
        quality: Optional[str] = None,
    ) -> Artifact:
        """Convert one in-memory file, routed by its suffix."""
        converter_type = self.get_converter_type(source_format_of(filename), target_format)

        if converter_type == "raw":
            return self.raw.convert_bytes(filename, data, target_format)
        return self.audio.convert_bytes(filename, data, target_format, quality=quality)

    async def convert(
        self,
        source_path: str | Path,
        target_format: str,
        output_path: Optional[Path] = None,
        quality: Optional[str] = None,
        **kwargs,
    ) -> Path:
        """
        Route conversion of a file on disk to the appropriate converter.

        Args:
            source_path: Path to source file
            target_format: Target format
            output_path: Optional output path
            quality: Quality preset
            **kwargs: Additional converter-specific options

        Returns:
            Path to converted file
        """
        source = Path(source_path)
        converter_type = self.get_converter_type(source_format_of(source.name), target_format)

        if converter_type == "raw":
            return await self.raw.convert(source, target_format, output_path, quality)
        return await self.audio.convert(source, target_format, output_path, quality, **kwargs)


router = ConverterRouter()
