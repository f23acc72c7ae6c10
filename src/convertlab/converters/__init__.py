"""
Format converters.

This package provides converters for:
- Raw photos: CR2, NEF -> JPEG (embedded preview)
- Audio: WAV, FLAC, MP3, OGG -> MP3, WAV
"""

from .raw import RawConverter
from .audio import AudioConverter, AudioDecoder, SoundfileDecoder
from .router import ConverterRouter, filter_supported, router

__all__ = [
    "RawConverter",
    "AudioConverter",
    "AudioDecoder",
    "SoundfileDecoder",
    "ConverterRouter",
    "filter_supported",
    "router",
]
