"""Configuration management for convertlab."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MP3_QUALITY_PRESETS = {
    "low": 128,
    "medium": 192,
    "high": 320,
}
DEFAULT_MP3_BITRATE = MP3_QUALITY_PRESETS["low"]


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConverterConfig:
    """Configuration settings for the converters."""

    default_output_dir: Optional[Path] = None
    min_disk_space_mb: int = 100
    default_quality: str = "low"
    # Overrides default_quality when set
    mp3_bitrate_kbps: Optional[int] = None
    stop_preview_at_eoi: bool = False

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        if isinstance(self.default_output_dir, str):
            self.default_output_dir = Path(self.default_output_dir)

        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)

    @classmethod
    def from_env(cls) -> "ConverterConfig":
        """Load configuration from environment variables."""
        return cls(
            default_output_dir=Path(p) if (p := os.environ.get("CONVERTLAB_OUTPUT_DIR")) else None,
            min_disk_space_mb=int(os.environ.get("CONVERTLAB_MIN_DISK_SPACE_MB", 100)),
            default_quality=os.environ.get("CONVERTLAB_DEFAULT_QUALITY", "low"),
            mp3_bitrate_kbps=int(b) if (b := os.environ.get("CONVERTLAB_MP3_BITRATE")) else None,
            stop_preview_at_eoi=_env_flag("CONVERTLAB_STOP_PREVIEW_AT_EOI"),
            log_level=os.environ.get("CONVERTLAB_LOG_LEVEL", "INFO"),
            log_file=Path(p) if (p := os.environ.get("CONVERTLAB_LOG_FILE")) else None,
        )

    def get_mp3_bitrate(self, quality: Optional[str] = None) -> int:
        """Resolve an MP3 bitrate from a quality preset.

        An explicit known preset wins. Otherwise ``mp3_bitrate_kbps`` is used
        when set, then the ``default_quality`` preset.
        """
        if quality is not None and quality.lower() in MP3_QUALITY_PRESETS:
            return MP3_QUALITY_PRESETS[quality.lower()]
        if self.mp3_bitrate_kbps is not None:
            return self.mp3_bitrate_kbps
        return MP3_QUALITY_PRESETS.get(self.default_quality.lower(), DEFAULT_MP3_BITRATE)


config = ConverterConfig.from_env()
