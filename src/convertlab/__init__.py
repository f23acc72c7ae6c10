"""
convertlab: raw photo preview extraction and PCM audio encoding.

- Raw photos: CR2/NEF -> embedded JPEG preview
- Audio: decoded PCM -> 16-bit WAV or MP3 (LAME)
"""

import logging

from .config import config
from .logging_config import setup_logging

__version__ = "0.1.0"

setup_logging(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    log_file=str(config.log_file) if config.log_file else None,
)
