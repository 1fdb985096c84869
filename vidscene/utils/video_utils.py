"""External media tool invocation and video metadata utilities."""

import json
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence
import logging

from .exceptions import (
    MediaToolFailedError,
    MediaToolNotFoundError,
    OperationCancelledError,
)

logger = logging.getLogger(__name__)

# How often a running tool is checked for cancellation
POLL_INTERVAL_SECONDS = 0.1


@dataclass(frozen=True)
class VideoProperties:
    """Source video properties. Any field may be None when unknown."""

    duration_seconds: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    audio_sample_rate: Optional[int] = None


def resolve_tool(tool: str) -> str:
    """
    Locate a tool binary.

    Raises:
        MediaToolNotFoundError: If the binary is not on PATH
    """
    path = shutil.which(tool)
    if path is None:
        raise MediaToolNotFoundError(
            f"{tool} not found in PATH. Install FFmpeg with: "
            f"brew install ffmpeg (macOS) or apt install ffmpeg (Linux)",
            tool=tool
        )
    return path


def check_ffmpeg_available(tool: str = "ffmpeg") -> Optional[str]:
    """Return an error description if the tool is missing, None if it is available."""
    try:
        path = resolve_tool(tool)
    except MediaToolNotFoundError as e:
        return str(e)
    logger.debug(f"{tool} found at {path}")
    return None


def is_ffmpeg_available(tool: str = "ffmpeg") -> bool:
    return check_ffmpeg_available(tool) is None


def run_media_tool(
    args: Sequence[str],
    tool: str = "ffmpeg",
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> str:
    """
    Run an external media tool and capture its combined output.

    The call blocks until the tool exits. If ``cancel_event`` is set or
    ``timeout`` elapses first, the process is killed and
    OperationCancelledError is raised.

    Args:
        args: Arguments passed after the tool name
        tool: Tool binary name or path
        cancel_event: Optional cancellation signal
        timeout: Optional deadline in seconds

    Returns:
        Captured stdout and stderr text

    Raises:
        MediaToolNotFoundError: Tool is not installed
        MediaToolFailedError: Tool exited with non-zero status
        OperationCancelledError: Cancelled or timed out
    """
    tool_path = resolve_tool(tool)
    cmd: List[str] = [tool_path, *[str(a) for a in args]]
    tool_name = Path(tool).name

    logger.debug(f"Running {tool_name}: {' '.join(cmd[1:])}")

    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors='replace'
        )
    except FileNotFoundError as e:
        raise MediaToolNotFoundError(f"{tool_name} could not be started: {e}", tool=tool_name)

    deadline = time.monotonic() + timeout if timeout else None
    start = time.monotonic()

    try:
        while True:
            try:
                output, _ = process.communicate(timeout=POLL_INTERVAL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                reason = None
                if cancel_event is not None and cancel_event.is_set():
                    reason = "cancelled"
                elif deadline is not None and time.monotonic() >= deadline:
                    reason = f"timed out after {timeout:.1f}s"

                if reason:
                    process.kill()
                    output, _ = process.communicate()
                    logger.warning(f"{tool_name} {reason}, process terminated")
                    raise OperationCancelledError(f"{tool_name} {reason}", tool=tool_name, output=output)
    except BaseException:
        # KeyboardInterrupt and the like must not leave the tool running
        if process.poll() is None:
            process.kill()
            process.communicate()
            logger.warning(f"{tool_name} interrupted, process terminated")
        raise

    elapsed = time.monotonic() - start
    if process.returncode != 0:
        logger.error(f"{tool_name} exited with status {process.returncode} after {elapsed:.1f}s")
        raise MediaToolFailedError(
            f"{tool_name} exited with status {process.returncode}",
            tool=tool_name,
            output=output,
            returncode=process.returncode
        )

    logger.debug(f"{tool_name} finished in {elapsed:.1f}s")
    return output


def _parse_rate(value: Optional[str]) -> Optional[float]:
    """Parse an ffprobe rational like '30000/1001'."""
    if not value:
        return None
    try:
        if '/' in value:
            num, den = value.split('/', 1)
            if float(den) == 0:
                return None
            rate = float(num) / float(den)
        else:
            rate = float(value)
    except ValueError:
        return None
    return rate if rate > 0 else None


def _positive_int(value) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_probe_output(data: dict) -> VideoProperties:
    """Build VideoProperties from ffprobe JSON output."""
    streams = data.get('streams', [])
    video = next((s for s in streams if s.get('codec_type') == 'video'), {})
    audio = next((s for s in streams if s.get('codec_type') == 'audio'), {})

    duration = None
    try:
        duration = float(data.get('format', {}).get('duration'))
    except (TypeError, ValueError):
        pass
    if duration is not None and duration <= 0:
        duration = None

    frame_rate = _parse_rate(video.get('avg_frame_rate')) or _parse_rate(video.get('r_frame_rate'))

    return VideoProperties(
        duration_seconds=duration,
        width=_positive_int(video.get('width')),
        height=_positive_int(video.get('height')),
        frame_rate=frame_rate,
        audio_sample_rate=_positive_int(audio.get('sample_rate')),
    )


def probe_video_properties(
    video_path: Path,
    ffprobe_path: str = "ffprobe",
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> VideoProperties:
    """
    Get video properties with ffprobe.

    Args:
        video_path: Path to video file
        ffprobe_path: ffprobe binary
        cancel_event: Optional cancellation signal
        timeout: Optional deadline in seconds

    Returns:
        VideoProperties with unknown fields left as None
    """
    args = [
        '-v', 'error',
        '-show_entries', 'format=duration',
        '-show_entries', 'stream=codec_type,width,height,r_frame_rate,avg_frame_rate,sample_rate',
        '-of', 'json',
        str(video_path)
    ]

    output = run_media_tool(args, tool=ffprobe_path, cancel_event=cancel_event, timeout=timeout)
    try:
        data = json.loads(output)
    except ValueError as e:
        raise MediaToolFailedError(f"Could not parse ffprobe output: {e}", tool="ffprobe", output=output)

    properties = parse_probe_output(data)
    logger.debug(f"Probed {video_path}: {properties}")
    return properties
