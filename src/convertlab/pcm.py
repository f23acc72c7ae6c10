"""
PCM audio encoders.

Turns decoded floating-point audio into:
- a canonical 44-byte-header WAV file with 16-bit samples
- an MP3 bitstream, by feeding 1152-frame blocks to a block encoder (LAME)
"""

import struct
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

from .logging_config import DecodeError, EncodeError, InvalidInputError, get_logger
from .models import Artifact, PcmAudioBuffer

logger = get_logger("pcm")

WAV_HEADER_SIZE = 44
WAV_FORMAT_PCM = 1
WAV_BIT_DEPTH = 16
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")

MP3_BLOCK_SIZE = 1152
MP3_BITRATES = frozenset(
    {8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160, 192, 224, 256, 320}
)


def float_to_int16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to signed 16-bit integers.

    Samples are clamped to [-1, 1]. Negative values scale by 32768 and
    non-negative values by 32767, then truncate toward zero.
    """
    clipped = np.clip(np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype("<i2")


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical 44-byte WAV header."""

    riff_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def build_wav_header(channels: int, sample_rate: int, frames: int) -> bytes:
    block_align = channels * (WAV_BIT_DEPTH // 8)
    data_size = frames * block_align
    return _WAV_HEADER.pack(
        b"RIFF",
        WAV_HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        WAV_FORMAT_PCM,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        WAV_BIT_DEPTH,
        b"data",
        data_size,
    )


def parse_wav_header(data: bytes) -> WavHeader:
    """Read back a canonical WAV header.

    Raises:
        DecodeError: If the data does not start with a RIFF/WAVE PCM header
    """
    if len(data) < WAV_HEADER_SIZE:
        raise DecodeError(f"WAV data too short: {len(data)} bytes")

    (riff, riff_size, wave, fmt, fmt_size, audio_format, channels, sample_rate,
     byte_rate, block_align, bits, data_id, data_size) = _WAV_HEADER.unpack_from(data)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise DecodeError("Not a canonical RIFF/WAVE file")

    return WavHeader(
        riff_size=riff_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits,
        data_size=data_size,
    )


def encode_wav(buffer: PcmAudioBuffer, filename: Optional[str] = None) -> Artifact:
    """
    Serialize PCM audio into a 16-bit WAV file.

    Args:
        buffer: Decoded audio
        filename: Name for the resulting artifact

    Returns:
        Artifact of exactly ``44 + frames * channels * 2`` bytes
    """
    header = build_wav_header(buffer.channels, buffer.sample_rate, buffer.frames)
    # (channels, frames) -> (frames, channels) gives frame-interleaved order
    body = np.ascontiguousarray(float_to_int16(buffer.samples).T).tobytes()

    logger.debug(
        f"WAV: {buffer.channels}ch {buffer.sample_rate}Hz, {buffer.frames} frames, "
        f"{len(body)} data bytes"
    )
    return Artifact(filename=filename or "audio.wav", data=header + body, mime_type="audio/wav")


class Mp3BlockEncoder(Protocol):
    """Block-in/bytes-out MP3 encoder."""

    def encode_block(self, left: np.ndarray, right: np.ndarray) -> bytes: ...

    def flush(self) -> bytes: ...


class LameBlockEncoder:
    """Mp3BlockEncoder backed by LAME through ``lameenc``.

    A fresh instance is needed for every stream; LAME can only be flushed once.
    Flushing a stream that never received a block yields no bytes.
    """

    def __init__(self, channels: int, sample_rate: int, bitrate_kbps: int = 128, quality: int = 2):
        import lameenc

        if channels not in (1, 2):
            raise InvalidInputError(f"MP3 supports 1 or 2 channels, got {channels}")

        self.channels = channels
        self._started = False
        self._encoder = lameenc.Encoder()
        self._encoder.set_bit_rate(bitrate_kbps)
        self._encoder.set_in_sample_rate(sample_rate)
        self._encoder.set_channels(channels)
        self._encoder.set_quality(quality)

    def encode_block(self, left: np.ndarray, right: np.ndarray) -> bytes:
        if self.channels == 1:
            pcm = np.asarray(left, dtype=np.int16)
        else:
            pcm = np.empty(len(left) * 2, dtype=np.int16)
            pcm[0::2] = left
            pcm[1::2] = right
        self._started = True
        return bytes(self._encoder.encode(pcm.tobytes()))

    def flush(self) -> bytes:
        # lameenc refuses to flush before the first encode call
        if not self._started:
            return b""
        return bytes(self._encoder.flush())


def encode_mp3(
    buffer: PcmAudioBuffer,
    bitrate_kbps: int = 128,
    encoder: Optional[Mp3BlockEncoder] = None,
    filename: Optional[str] = None,
) -> Artifact:
    """
    Encode PCM audio to MP3 in blocks of 1152 frames.

    Mono input feeds its single channel as both left and right block. Every
    non-empty chunk the encoder returns is kept in order, followed by the
    flush output.

    Args:
        buffer: Decoded audio
        bitrate_kbps: Target constant bitrate
        encoder: Block encoder; a LameBlockEncoder is created when omitted
        filename: Name for the resulting artifact

    Raises:
        InvalidInputError: If the bitrate is not one LAME supports
        EncodeError: If the encoder fails or produces nothing for non-empty input
    """
    if bitrate_kbps not in MP3_BITRATES:
        raise InvalidInputError(
            f"Unsupported MP3 bitrate: {bitrate_kbps} kbps",
            suggestion=f"Use one of: {', '.join(str(b) for b in sorted(MP3_BITRATES))}",
        )

    left = float_to_int16(buffer.channel(0))
    right = float_to_int16(buffer.channel(1)) if buffer.channels > 1 else left

    if encoder is None:
        encoder = LameBlockEncoder(min(buffer.channels, 2), buffer.sample_rate, bitrate_kbps)

    chunks: list[bytes] = []
    try:
        for i in range(0, len(left), MP3_BLOCK_SIZE):
            chunk = encoder.encode_block(left[i : i + MP3_BLOCK_SIZE], right[i : i + MP3_BLOCK_SIZE])
            if len(chunk) > 0:
                chunks.append(chunk)

        tail = encoder.flush()
        if len(tail) > 0:
            chunks.append(tail)
    except (RuntimeError, ValueError, TypeError) as e:
        raise EncodeError(f"MP3 encoder failed: {e}") from e

    data = b"".join(chunks)
    if buffer.frames > 0 and not data:
        raise EncodeError("MP3 encoder produced no output")

    logger.debug(
        f"MP3: {buffer.frames} frames in {len(chunks)} chunks, {len(data)} bytes at {bitrate_kbps}kbps"
    )
    return Artifact(filename=filename or "audio.mp3", data=data, mime_type="audio/mpeg")
