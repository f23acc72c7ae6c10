"""Data model shared by the converters."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Optional, Sequence, Union

import numpy as np

from .logging_config import FormatNotSupportedError, InvalidInputError

RawContainerBuffer = Union[bytes, bytearray, memoryview]


class ContainerKind(str, Enum):
    """Raw photo containers with an embedded JPEG preview."""

    CR2 = "cr2"
    NEF = "nef"

    @classmethod
    def from_filename(cls, filename: str) -> "ContainerKind":
        suffix = PurePath(filename).suffix.lower().lstrip(".")
        try:
            return cls(suffix)
        except ValueError:
            raise FormatNotSupportedError(
                f"'{filename}' is not a supported raw container",
                suggestion=f"Supported containers: {', '.join(k.value for k in cls)}",
            ) from None


@dataclass(frozen=True)
class Artifact:
    """A converted file ready to be handed back to the caller."""

    filename: str
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class JpegPreview:
    """Byte range ``[start, end)`` of a raw container holding a JPEG preview.

    The range is a view on ``source``; nothing is copied until
    :meth:`to_bytes` is called.
    """

    source: RawContainerBuffer = field(repr=False)
    start: int
    end: int
    filename: str
    mime_type: str = "image/jpeg"

    @property
    def length(self) -> int:
        return self.end - self.start

    def to_bytes(self) -> bytes:
        return bytes(memoryview(self.source)[self.start : self.end])

    def to_artifact(self) -> Artifact:
        return Artifact(filename=self.filename, data=self.to_bytes(), mime_type=self.mime_type)


@dataclass(frozen=True)
class PcmAudioBuffer:
    """Decoded audio: float samples shaped ``(channels, frames)``.

    Samples are nominally in [-1.0, 1.0]; encoders clamp anything outside.
    """

    sample_rate: int
    samples: np.ndarray = field(repr=False)

    def __post_init__(self):
        if int(self.sample_rate) != self.sample_rate or self.sample_rate <= 0:
            raise InvalidInputError(f"Sample rate must be a positive integer, got {self.sample_rate}")

        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(1, -1)
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise InvalidInputError(
                f"Samples must be shaped (channels, frames), got {samples.shape}"
            )
        object.__setattr__(self, "sample_rate", int(self.sample_rate))
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_channels(
        cls, sample_rate: int, channels: Sequence[Sequence[float]]
    ) -> "PcmAudioBuffer":
        """Build a buffer from one sample sequence per channel."""
        if not channels:
            raise InvalidInputError("At least one channel is required")
        lengths = {len(channel) for channel in channels}
        if len(lengths) != 1:
            raise InvalidInputError(
                f"All channels must have the same number of samples, got {sorted(lengths)}"
            )
        return cls(sample_rate, np.array([np.asarray(c, dtype=np.float32) for c in channels]))

    @classmethod
    def silence(cls, sample_rate: int, frames: int, channels: int = 1) -> "PcmAudioBuffer":
        return cls(sample_rate, np.zeros((channels, frames), dtype=np.float32))

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]


@dataclass(frozen=True)
class ConversionRequest:
    """One file handed over by the caller for conversion."""

    filename: str
    data: bytes = field(repr=False)
    target_format: str
    quality: Optional[str] = None
