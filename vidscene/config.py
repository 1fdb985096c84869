"""Configuration management for vidscene."""

import tempfile
from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix='VIDSCENE_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Parent of every temporary frame directory and transcoded file
    temp_dir: Path = Field(default=Path(tempfile.gettempdir()) / "vidscene")

    # External tool binaries (resolved on PATH if not absolute)
    ffmpeg_path: str = Field(default="ffmpeg")
    ffprobe_path: str = Field(default="ffprobe")
    tool_timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Kill a tool invocation after this many seconds")

    # Scene grouping
    similarity_threshold: float = Field(default=0.92, gt=0, le=1, description="Minimum histogram correlation for consecutive frames to share a group")
    histogram_bins: int = Field(default=32, ge=1, le=256, description="Histogram buckets per RGB channel")

    # Frame extraction and reassembly
    frame_jpeg_quality: int = Field(default=2, ge=1, le=31, description="ffmpeg qscale for extracted frames (lower is better)")
    reassembly_crf: int = Field(default=18, ge=0, le=51)
    reassembly_preset: str = Field(default="slow")

    # Color LUT propagation
    lut_size: int = Field(default=64, ge=2, le=256)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.temp_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
