"""
Frame extraction and compression planning.

Everything here is a pure function of the source video properties. Targets
are maximums: no derived resolution or frame rate ever exceeds the source.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import logging

from ..utils.video_utils import VideoProperties

logger = logging.getLogger(__name__)

# --- Frame extraction ---

# Assumed source rate when the metadata has none
DEFAULT_SOURCE_FPS = 30.0

MAX_EXTRACTION_FPS = 30.0
REDUCED_FPS_15 = 15.0
REDUCED_FPS_10 = 10.0
REDUCED_FPS_5 = 5.0

# Longer videos may exceed time or cost limits for frame-based enhancement
MAX_RECOMMENDED_DURATION = 120.0

# Extracted frames are frame_000001.jpg, frame_000002.jpg, ... so that
# lexicographic order is temporal order. Beyond MAX_FRAME_INDEX the names
# widen and that ordering no longer holds.
FRAME_INDEX_WIDTH = 6
MAX_FRAME_INDEX = 10 ** FRAME_INDEX_WIDTH - 1
FRAME_FILENAME_PREFIX = "frame_"
FRAME_FILENAME_SUFFIX = ".jpg"
FRAME_FILENAME_PATTERN = f"{FRAME_FILENAME_PREFIX}%0{FRAME_INDEX_WIDTH}d{FRAME_FILENAME_SUFFIX}"

FRAME_JPEG_QUALITY = 2

REASSEMBLY_CRF = 18
REASSEMBLY_PRESET = "slow"

# --- Compression (maximums; a lower-quality source is never upscaled) ---

# Longest edge in pixels
MAX_RESOLUTION = 768
MAX_FRAME_RATE = 5.0

VIDEO_CODEC = "libsvtav1"
# AV1 CRF (0-63)
VIDEO_CRF = 35
# SVT-AV1 preset (0-13, lower is slower and more efficient)
VIDEO_PRESET = 4

AUDIO_CODEC = "libopus"
AUDIO_BITRATE = "24k"
AUDIO_CHANNELS = 1

# Sample rates the audio encoder accepts, descending
SUPPORTED_SAMPLE_RATES = (48000, 24000, 16000, 12000, 8000)


def determine_extraction_fps(source_fps: Optional[float], duration_seconds: Optional[float]) -> float:
    """
    Frame extraction rate for a video, reduced for longer durations.

    Args:
        source_fps: Source frame rate (DEFAULT_SOURCE_FPS if unknown)
        duration_seconds: Source duration (unknown or <= 0 treated as short)

    Returns:
        min(source_fps, tier cap)
    """
    if not source_fps or source_fps <= 0:
        source_fps = DEFAULT_SOURCE_FPS
    duration = duration_seconds or 0.0

    if duration <= 30:
        cap = MAX_EXTRACTION_FPS
    elif duration <= 60:
        cap = REDUCED_FPS_15
    elif duration <= 120:
        cap = REDUCED_FPS_10
    else:
        cap = REDUCED_FPS_5

    return min(source_fps, cap)


def is_duration_recommended(duration_seconds: float) -> bool:
    return duration_seconds <= MAX_RECOMMENDED_DURATION


def estimate_frame_count(duration_seconds: Optional[float], extraction_fps: float) -> Optional[int]:
    """Expected number of extracted frames, None if the duration is unknown."""
    if not duration_seconds or duration_seconds <= 0:
        return None
    return int(round(duration_seconds * extraction_fps))


def estimate_enhancement_time(duration_seconds: float, fps: float) -> float:
    """
    Rough total enhancement time in seconds.

    Assumes ~30 frames per group, ~15s of editing per group, plus ~15s for
    extraction and reassembly.
    """
    extraction_fps = determine_extraction_fps(fps, duration_seconds)
    total_frames = duration_seconds * extraction_fps

    estimated_groups = max(1.0, total_frames / 30)
    return estimated_groups * 15 + 15


def frame_filename(index: int) -> str:
    """Filename of the 1-based ``index``-th extracted frame."""
    return FRAME_FILENAME_PATTERN % index


def build_extract_args(
    input_path: Path,
    output_dir: Path,
    extraction_fps: float,
    source_fps: float,
    quality: int = FRAME_JPEG_QUALITY
) -> List[str]:
    """ffmpeg arguments that write every frame of ``input_path`` as a JPEG."""
    args = [
        '-i', str(input_path),
        '-qscale:v', str(quality),
    ]

    # Only resample when extracting below the source rate
    if extraction_fps < source_fps:
        args += ['-vf', f'fps={extraction_fps:.2f}']

    args += [
        '-fps_mode', 'passthrough',
        '-y', str(Path(output_dir) / FRAME_FILENAME_PATTERN),
    ]
    return args


def build_reassemble_args(
    frame_dir: Path,
    original_video_path: Path,
    output_path: Path,
    fps: float,
    crf: int = REASSEMBLY_CRF,
    preset: str = REASSEMBLY_PRESET
) -> List[str]:
    """ffmpeg arguments that stitch a frame sequence into a video, keeping the original audio if any."""
    return [
        '-framerate', f'{fps:.2f}',
        '-i', str(Path(frame_dir) / FRAME_FILENAME_PATTERN),
        '-i', str(original_video_path),
        '-map', '0:v',
        '-map', '1:a?',  # audio is optional
        '-c:v', 'libx264',
        '-crf', str(crf),
        '-preset', preset,
        '-pix_fmt', 'yuv420p',
        '-c:a', 'copy',
        '-movflags', '+faststart',
        '-y', str(output_path),
    ]


@dataclass(frozen=True)
class CompressionPlan:
    """Target transcoding parameters derived from source properties."""

    target_long_edge: int
    target_frame_rate: float
    target_audio_sample_rate: int
    video_quality_factor: int = VIDEO_CRF
    encoding_speed_preset: int = VIDEO_PRESET
    audio_bitrate: str = AUDIO_BITRATE
    audio_channels: int = AUDIO_CHANNELS
    video_codec: str = VIDEO_CODEC
    audio_codec: str = AUDIO_CODEC


def round_up_sample_rate(source_rate: Optional[int]) -> int:
    """
    Smallest supported sample rate >= ``source_rate``.

    Rates above the highest supported rate clamp to it; unknown rates
    default to it.
    """
    if not source_rate or source_rate <= 0:
        return SUPPORTED_SAMPLE_RATES[0]

    for rate in reversed(SUPPORTED_SAMPLE_RATES):
        if rate >= source_rate:
            return rate
    return SUPPORTED_SAMPLE_RATES[0]


def plan_compression(
    properties: Optional[VideoProperties] = None,
    max_resolution: int = MAX_RESOLUTION,
    max_frame_rate: float = MAX_FRAME_RATE
) -> CompressionPlan:
    """
    Derive compression targets from source properties.

    Args:
        properties: Source properties, None or partial when unknown
        max_resolution: Longest-edge cap in pixels
        max_frame_rate: Frame rate cap

    Returns:
        CompressionPlan never exceeding the source resolution or frame rate
    """
    long_edge = max_resolution
    frame_rate = max_frame_rate
    sample_rate = SUPPORTED_SAMPLE_RATES[0]

    if properties is not None:
        if properties.width and properties.height and properties.width > 0 and properties.height > 0:
            long_edge = min(max_resolution, max(properties.width, properties.height))
        if properties.frame_rate and properties.frame_rate > 0:
            frame_rate = min(max_frame_rate, properties.frame_rate)
        sample_rate = round_up_sample_rate(properties.audio_sample_rate)

    plan = CompressionPlan(
        target_long_edge=long_edge,
        target_frame_rate=frame_rate,
        target_audio_sample_rate=sample_rate,
    )
    logger.debug(f"Compression plan: {plan}")
    return plan


def scale_filter(long_edge: int) -> str:
    """
    Video filter that shrinks the longest edge to ``long_edge`` and never enlarges.

    The other edge follows the aspect ratio, rounded to an even size.
    """
    return (
        f"scale='if(gte(iw,ih),min({long_edge},iw),-2)'"
        f":'if(gte(iw,ih),-2,min({long_edge},ih))'"
        f",format=yuv420p"
    )


def build_transcode_args(input_path: Path, output_path: Path, plan: CompressionPlan) -> List[str]:
    """ffmpeg arguments implementing ``plan``."""
    return [
        '-i', str(input_path),
        '-c:v', plan.video_codec,
        '-preset', str(plan.encoding_speed_preset),
        '-crf', str(plan.video_quality_factor),
        '-r', f'{plan.target_frame_rate:.2f}',
        '-vf', scale_filter(plan.target_long_edge),
        # Video required, audio optional
        '-map', '0:v:0',
        '-map', '0:a?',
        '-c:a', plan.audio_codec,
        '-b:a', plan.audio_bitrate,
        '-vbr', 'on',
        '-ac', str(plan.audio_channels),
        '-ar', str(plan.target_audio_sample_rate),
        '-y', str(output_path),
    ]
