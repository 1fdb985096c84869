"""Frame extraction from videos and frame-to-video reassembly using ffmpeg."""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

from .planner import (
    DEFAULT_SOURCE_FPS,
    FRAME_FILENAME_PREFIX,
    FRAME_FILENAME_SUFFIX,
    FRAME_JPEG_QUALITY,
    MAX_FRAME_INDEX,
    REASSEMBLY_CRF,
    REASSEMBLY_PRESET,
    build_extract_args,
    build_reassemble_args,
    determine_extraction_fps,
    estimate_frame_count,
)
from ..utils.exceptions import EmptyOutputError, InputValidationError
from ..utils.temp_resources import TempResource, create_temp_dir
from ..utils.video_utils import VideoProperties, run_media_tool

logger = logging.getLogger(__name__)


@dataclass
class FrameExtractionResult:
    """
    Frames extracted from a video.

    Owns its temporary frame directory. Call ``release_resources()`` (or use
    it as a context manager) when the frames are no longer needed.
    """

    frame_dir: Path
    frame_paths: List[Path]
    original_fps: float
    extraction_fps: float
    total_frames: int
    _resource: TempResource = field(repr=False)

    def release_resources(self):
        """Remove the frame directory. Safe to call more than once."""
        self._resource.release()

    @property
    def released(self) -> bool:
        return self._resource.released

    def __enter__(self) -> "FrameExtractionResult":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release_resources()
        return False


def collect_frame_paths(frame_dir: Path) -> List[Path]:
    """Sorted paths of all ``frame_*.jpg`` files in ``frame_dir``."""
    paths = [
        p for p in Path(frame_dir).iterdir()
        if p.is_file() and p.name.startswith(FRAME_FILENAME_PREFIX) and p.name.endswith(FRAME_FILENAME_SUFFIX)
    ]
    return sorted(paths, key=lambda p: p.name)


def extract_frames(
    video_path: Path,
    properties: Optional[VideoProperties] = None,
    temp_dir: Optional[Path] = None,
    quality: int = FRAME_JPEG_QUALITY,
    ffmpeg_path: str = "ffmpeg",
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> FrameExtractionResult:
    """
    Extract frames from a video as individual JPEG images.

    The extraction rate is reduced for longer videos to keep the frame count
    manageable. The frame directory is removed before any error propagates.

    Args:
        video_path: Source video
        properties: Source properties (frame rate and duration are used)
        temp_dir: Parent directory for the frame directory
        quality: JPEG qscale (2 is near-lossless)
        ffmpeg_path: ffmpeg binary
        cancel_event: Optional cancellation signal
        timeout: Optional deadline in seconds

    Returns:
        FrameExtractionResult owning the frame directory
    """
    video_path = Path(video_path)
    if not video_path.is_file():
        raise InputValidationError(f"Video not found: {video_path}")

    logger.info(f"Starting frame extraction for {video_path.name}")

    original_fps = DEFAULT_SOURCE_FPS
    duration = 0.0
    if properties is not None:
        if properties.frame_rate and properties.frame_rate > 0:
            original_fps = properties.frame_rate
        duration = properties.duration_seconds or 0.0

    extraction_fps = determine_extraction_fps(original_fps, duration)
    logger.info(
        f"Frame extraction parameters: original_fps={original_fps:.2f}, "
        f"extraction_fps={extraction_fps:.2f}, duration={duration:.1f}s"
    )

    expected = estimate_frame_count(duration, extraction_fps)
    if expected is not None and expected > MAX_FRAME_INDEX:
        logger.warning(
            f"Expected ~{expected} frames, more than the {MAX_FRAME_INDEX} that "
            f"fixed-width frame names keep in order"
        )

    resource = create_temp_dir("video-frames-", base_dir=temp_dir)
    try:
        args = build_extract_args(video_path, resource.path, extraction_fps, original_fps, quality)
        output = run_media_tool(args, tool=ffmpeg_path, cancel_event=cancel_event, timeout=timeout)

        frame_paths = collect_frame_paths(resource.path)
        if not frame_paths:
            raise EmptyOutputError(
                f"No frames extracted from video: {video_path.name}",
                tool=Path(ffmpeg_path).name,
                output=output
            )
        if len(frame_paths) > MAX_FRAME_INDEX:
            logger.warning(f"{len(frame_paths)} frames extracted; frame order past {MAX_FRAME_INDEX} is not guaranteed")
    except BaseException:
        resource.release()
        raise

    logger.info(f"Extracted {len(frame_paths)} frames at {extraction_fps:.2f} fps into {resource.path}")

    return FrameExtractionResult(
        frame_dir=resource.path,
        frame_paths=frame_paths,
        original_fps=original_fps,
        extraction_fps=extraction_fps,
        total_frames=len(frame_paths),
        _resource=resource,
    )


def reassemble_video(
    frame_dir: Path,
    original_video_path: Path,
    output_path: Path,
    fps: float,
    crf: int = REASSEMBLY_CRF,
    preset: str = REASSEMBLY_PRESET,
    ffmpeg_path: str = "ffmpeg",
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> Path:
    """
    Stitch ``frame_%06d.jpg`` frames back into an H.264 video.

    The original's audio track is copied when present. The output is
    fast-start enabled. Any failure removes whatever was written to
    ``output_path``.

    Args:
        frame_dir: Directory of frames named by the frame filename convention
        original_video_path: Source of the audio track (may have none)
        output_path: Destination video
        fps: Output frame rate (the extraction rate)

    Returns:
        output_path

    Raises:
        EmptyOutputError: ffmpeg succeeded but the output is missing or empty
    """
    output_path = Path(output_path)
    logger.info(f"Reassembling {Path(original_video_path).name} from {frame_dir} at {fps:.2f} fps")

    args = build_reassemble_args(frame_dir, original_video_path, output_path, fps, crf=crf, preset=preset)
    try:
        output = run_media_tool(args, tool=ffmpeg_path, cancel_event=cancel_event, timeout=timeout)

        if not output_path.exists():
            raise EmptyOutputError(f"Output video not found after reassembly: {output_path}", output=output)
        size = output_path.stat().st_size
        if size == 0:
            raise EmptyOutputError(f"Reassembled video is empty: {output_path}", output=output)
    except BaseException:
        # Never leave a partial or empty video behind
        output_path.unlink(missing_ok=True)
        raise

    logger.info(f"Video reassembly complete: {output_path} ({size} bytes)")
    return output_path
