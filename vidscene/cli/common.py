import logging
import sys
from pathlib import Path
from typing import Optional

from colorama import Fore, Style

from ..config import Settings
from ..utils.exceptions import (
    EmptyOutputError,
    InputValidationError,
    MediaToolFailedError,
    MediaToolNotFoundError,
    OperationCancelledError,
    VidsceneError,
)
from ..utils.video_utils import VideoProperties, probe_video_properties

logger = logging.getLogger(__name__)

# Remediation hint per failure class
_HINTS = {
    MediaToolNotFoundError: "Install FFmpeg or set VIDSCENE_FFMPEG_PATH / VIDSCENE_FFPROBE_PATH.",
    MediaToolFailedError: "The tool rejected the input; check the output below.",
    EmptyOutputError: "The tool ran but produced no usable output.",
    OperationCancelledError: "The operation was cancelled or timed out.",
    InputValidationError: "Check the input path.",
}


def _load_properties(video: Path, settings: Settings) -> Optional[VideoProperties]:
    """
    Probe source properties, tolerating a missing or failing ffprobe.

    Returns None when the properties cannot be determined; every planner
    falls back to its defaults in that case.
    """
    try:
        return probe_video_properties(
            video,
            ffprobe_path=settings.ffprobe_path,
            timeout=settings.tool_timeout_seconds
        )
    except VidsceneError as e:
        logger.warning(f"Could not read video properties, using defaults: {e}")
        return None


def _fail(error: Exception):
    """Print a fatal error with its diagnostic output and exit."""
    hint = next((h for cls, h in _HINTS.items() if isinstance(error, cls)), None)
    print(f"{Fore.RED}Error ({type(error).__name__}): {error}{Style.RESET_ALL}")
    if hint:
        print(f"{Fore.YELLOW}{hint}{Style.RESET_ALL}")
    sys.exit(1)


def _format_properties(properties: Optional[VideoProperties]) -> str:
    if properties is None:
        return "unknown"

    def fmt(value, unit=""):
        return f"{value}{unit}" if value else "?"

    size = f"{fmt(properties.width)}x{fmt(properties.height)}"
    duration = f"{properties.duration_seconds:.1f}s" if properties.duration_seconds else "?"
    fps = f"{properties.frame_rate:.2f} fps" if properties.frame_rate else "? fps"
    return f"{size}, {fps}, {duration}, audio {fmt(properties.audio_sample_rate, ' Hz')}"
