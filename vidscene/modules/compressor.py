"""Video compression for upload to a remote analysis service."""

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

from .planner import (
    MAX_FRAME_RATE,
    MAX_RESOLUTION,
    CompressionPlan,
    build_transcode_args,
    plan_compression,
)
from ..utils.exceptions import EmptyOutputError, InputValidationError
from ..utils.temp_resources import TempResource, create_temp_file
from ..utils.video_utils import VideoProperties, run_media_tool

logger = logging.getLogger(__name__)


@dataclass
class CompressedVideo:
    """A compressed temporary video. Call ``release()`` when done with it."""

    path: Path
    size_bytes: int
    input_size_bytes: int
    plan: CompressionPlan
    elapsed_seconds: float
    _resource: TempResource = field(repr=False)

    @property
    def compression_ratio(self) -> float:
        if self.size_bytes <= 0:
            return 0.0
        return self.input_size_bytes / self.size_bytes

    @property
    def released(self) -> bool:
        return self._resource.released

    def release(self):
        """Delete the compressed file. Safe to call more than once."""
        self._resource.release()

    def __enter__(self) -> "CompressedVideo":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


def compress_video(
    input_path: Path,
    properties: Optional[VideoProperties] = None,
    temp_dir: Optional[Path] = None,
    max_resolution: int = MAX_RESOLUTION,
    max_frame_rate: float = MAX_FRAME_RATE,
    ffmpeg_path: str = "ffmpeg",
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> CompressedVideo:
    """
    Compress a video to AV1/Opus WebM without upscaling any attribute.

    Properties should come from the original file, since compression may
    strip container metadata. The temporary output is removed before any
    error propagates.

    Args:
        input_path: Source video
        properties: Source properties, None if unknown
        temp_dir: Parent directory for the output file
        max_resolution: Longest-edge cap
        max_frame_rate: Frame rate cap
        ffmpeg_path: ffmpeg binary
        cancel_event: Optional cancellation signal
        timeout: Optional deadline in seconds

    Returns:
        CompressedVideo owning the temporary output
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        raise InputValidationError(f"Video not found: {input_path}")

    input_size = input_path.stat().st_size
    plan = plan_compression(properties, max_resolution=max_resolution, max_frame_rate=max_frame_rate)

    logger.info(
        f"Compressing {input_path.name} ({input_size} bytes): "
        f"long_edge<={plan.target_long_edge}, fps={plan.target_frame_rate:.2f}, "
        f"crf={plan.video_quality_factor}, audio={plan.audio_bitrate}@{plan.target_audio_sample_rate}Hz"
    )

    resource = create_temp_file("compressed-video-", suffix=".webm", base_dir=temp_dir)
    start = time.monotonic()
    try:
        args = build_transcode_args(input_path, resource.path, plan)
        output = run_media_tool(args, tool=ffmpeg_path, cancel_event=cancel_event, timeout=timeout)

        size = resource.path.stat().st_size if resource.path.exists() else 0
        if size == 0:
            raise EmptyOutputError(f"Compression produced no output for {input_path.name}", output=output)
    except BaseException:
        resource.release()
        raise

    elapsed = time.monotonic() - start
    result = CompressedVideo(
        path=resource.path,
        size_bytes=size,
        input_size_bytes=input_size,
        plan=plan,
        elapsed_seconds=elapsed,
        _resource=resource,
    )

    logger.info(
        f"Video compression complete: {result.path} ({size} bytes, "
        f"ratio {result.compression_ratio:.1f}x, {elapsed:.1f}s)"
    )
    return result
