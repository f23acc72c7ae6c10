"""Pytest configuration and fixtures for convertlab tests."""

import io
import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pytest


class RecordingBlockEncoder:
    """Block encoder double that records what it is fed.

    Each block becomes ``b"F" + <frame count as 2 bytes>``; flush returns
    ``flush_bytes``.
    """

    def __init__(self, flush_bytes: bytes = b"END", empty_blocks: set | None = None):
        self.blocks: list[tuple[np.ndarray, np.ndarray]] = []
        self.flush_calls = 0
        self.flush_bytes = flush_bytes
        self.empty_blocks = empty_blocks or set()

    def encode_block(self, left, right) -> bytes:
        index = len(self.blocks)
        self.blocks.append((np.array(left), np.array(right)))
        if index in self.empty_blocks:
            return b""
        return b"F" + len(left).to_bytes(2, "big")

    def flush(self) -> bytes:
        self.flush_calls += 1
        return self.flush_bytes


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def recording_encoder() -> RecordingBlockEncoder:
    return RecordingBlockEncoder()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A real 16x8 JPEG produced by Pillow."""
    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (16, 8), color=(200, 30, 30)).save(buf, format="JPEG")
    return buf.getvalue()


def make_raw_container(preview: bytes, prefix_size: int = 512, trailer: bytes = b"") -> bytes:
    """Build a TIFF-looking container with ``preview`` at ``prefix_size``."""
    header = b"II*\x00\x08\x00\x00\x00"
    padding = bytes(prefix_size - len(header))
    return header + padding + preview + trailer


@pytest.fixture
def raw_container(jpeg_bytes) -> bytes:
    return make_raw_container(jpeg_bytes, trailer=b"\x00" * 64)


@pytest.fixture
def sine_stereo() -> "np.ndarray":
    """0.1 s of a 440 Hz tone, left and right in opposite phase."""
    t = np.arange(4410) / 44100.0
    tone = 0.5 * np.sin(2 * np.pi * 440.0 * t)
    return np.stack([tone, -tone]).astype(np.float32)
