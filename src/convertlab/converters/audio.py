"""
Audio converter built on the in-process PCM encoders.

Supports:
- Input: WAV, FLAC, MP3, OGG (decoded with soundfile/libsndfile)
- Output: MP3 (LAME), WAV (16-bit PCM)
"""

import asyncio
import io
from pathlib import Path
from typing import Optional, Protocol

from ..config import config
from ..file_manager import FileManager, derive_output_name
from ..logging_config import DecodeError, FormatNotSupportedError, get_logger
from ..models import Artifact, PcmAudioBuffer
from ..pcm import encode_mp3, encode_wav

logger = get_logger("converters.audio")

SUPPORTED_INPUT_FORMATS = {"wav", "flac", "mp3", "ogg"}
SUPPORTED_OUTPUT_FORMATS = {"mp3", "wav"}


class AudioDecoder(Protocol):
    """Turns encoded audio bytes into PCM."""

    def decode(self, data: bytes) -> PcmAudioBuffer: ...


class SoundfileDecoder:
    """AudioDecoder backed by libsndfile via ``soundfile``."""

    def decode(self, data: bytes) -> PcmAudioBuffer:
        import soundfile as sf

        try:
            samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (sf.SoundFileError, RuntimeError) as e:
            raise DecodeError(
                f"Could not decode audio: {e}",
                suggestion="Check that the file is a valid WAV, FLAC, MP3 or OGG stream",
            ) from e

        # soundfile yields (frames, channels)
        return PcmAudioBuffer(sample_rate, samples.T)


class AudioConverter:
    """Convert audio between formats by decoding to PCM and re-encoding."""

    def __init__(
        self,
        file_manager: Optional[FileManager] = None,
        decoder: Optional[AudioDecoder] = None,
    ):
        self.file_manager = file_manager or FileManager()
        self.decoder = decoder or SoundfileDecoder()

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

    def convert_bytes(
        self,
        filename: str,
        data: bytes,
        target_format: str,
        quality: Optional[str] = None,
        bitrate_kbps: Optional[int] = None,
    ) -> Artifact:
        """
        Convert one in-memory audio file.

        Args:
            filename: Source filename, used for the output name
            data: Encoded source audio
            target_format: 'mp3' or 'wav'
            quality: Optional preset (low, medium, high) selecting the MP3 bitrate
            bitrate_kbps: Optional explicit MP3 bitrate, wins over the preset

        Raises:
            FormatNotSupportedError: If the target format is not supported
            DecodeError: If the source cannot be decoded
            EncodeError: If MP3 encoding fails
        """
        target_format = target_format.lower()
        if not self.is_format_supported(target_format, for_output=True):
            raise FormatNotSupportedError(
                f"Output format '{target_format}' is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}",
            )

        output_name = derive_output_name(filename, target_format, SUPPORTED_INPUT_FORMATS)
        pcm = self.decoder.decode(data)
        logger.debug(
            f"Decoded {filename}: {pcm.channels}ch {pcm.sample_rate}Hz "
            f"{pcm.duration_seconds:.2f}s"
        )

        if target_format == "wav":
            return encode_wav(pcm, filename=output_name)

        bitrate = bitrate_kbps or config.get_mp3_bitrate(quality)
        return encode_mp3(pcm, bitrate, filename=output_name)

    async def convert(
        self,
        source_path: str | Path,
        target_format: str,
        output_path: Optional[Path] = None,
        quality: Optional[str] = None,
        bitrate_kbps: Optional[int] = None,
    ) -> Path:
        """
        Convert an audio file on disk to the target format.

        Args:
            source_path: Path to source audio
            target_format: Target format (mp3, wav)
            output_path: Optional output path (auto-generated if not provided)
            quality: Quality preset (low, medium, high)
            bitrate_kbps: Optional MP3 bitrate override

        Returns:
            Path to the converted audio file
        """
        source = Path(source_path)
        target_format = target_format.lower()

        if not self.is_format_supported(target_format, for_output=True):
            raise FormatNotSupportedError(
                f"Output format '{target_format}' is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}",
            )

        if output_path is None:
            output_path = self.file_manager.resolve_output_path(source, target_format)

        loop = asyncio.get_running_loop()
        artifact = await loop.run_in_executor(
            None,
            lambda: self.convert_bytes(
                source.name, source.read_bytes(), target_format, quality, bitrate_kbps
            ),
        )
        result = await loop.run_in_executor(
            None, self.file_manager.write_artifact, artifact, output_path
        )

        logger.info(f"Converted {source} -> {result}")
        return result
