"""Group consecutive video frames into scenes by color histogram similarity."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
import logging

from tqdm import tqdm

from .histogram import (
    HISTOGRAM_BINS,
    ColorHistogram,
    compare_histograms,
    compute_histogram_from_path,
)
from ..utils.exceptions import FrameDecodeError, InputValidationError

logger = logging.getLogger(__name__)

# Minimum histogram correlation for two consecutive frames to stay in one group.
# 0.95+ splits on minor camera movement; 0.85 merges different scenes with
# similar palettes.
DEFAULT_SIMILARITY_THRESHOLD = 0.92

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FrameGroup:
    """A run of consecutive, visually similar frames."""

    start_index: int
    end_index: int  # inclusive
    representative_index: int
    representative_path: str
    frame_paths: Tuple[str, ...]
    frame_count: int

    def to_dict(self) -> dict:
        return {
            'start_index': self.start_index,
            'end_index': self.end_index,
            'representative_index': self.representative_index,
            'representative_path': self.representative_path,
            'frame_paths': list(self.frame_paths),
            'frame_count': self.frame_count,
        }


def representative_index(start: int, end: int) -> int:
    """Middle frame of [start, end]; for even counts, the one just past the midpoint."""
    return start + (end - start + 1) // 2


def _build_group(frame_paths: Sequence[str], start: int, end: int) -> FrameGroup:
    rep = representative_index(start, end)
    return FrameGroup(
        start_index=start,
        end_index=end,
        representative_index=rep,
        representative_path=frame_paths[rep],
        frame_paths=tuple(frame_paths[start:end + 1]),
        frame_count=end - start + 1,
    )


def group_frames_by_histogram(
    frame_paths: Sequence[PathLike],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    bins_per_channel: int = HISTOGRAM_BINS,
    show_progress: bool = False
) -> List[FrameGroup]:
    """
    Group consecutive frames by histogram correlation.

    Each frame is compared only with the frame before it; a correlation
    below ``threshold`` starts a new group. A frame that fails to decode
    (other than the first) also starts a new group and processing continues.

    Args:
        frame_paths: Frame image paths in temporal order
        threshold: Minimum correlation to stay in the same group, in (0, 1]
        bins_per_channel: Histogram buckets per channel
        show_progress: Show a tqdm progress bar

    Returns:
        Groups partitioning [0, len(frame_paths) - 1] in order

    Raises:
        InputValidationError: No frames were given
        FrameDecodeError: The first frame cannot be decoded
    """
    paths = [str(p) for p in frame_paths]
    if not paths:
        raise InputValidationError("No frames to group")

    if not 0 < threshold <= 1:
        logger.warning(f"Similarity threshold {threshold} out of range (0, 1], using {DEFAULT_SIMILARITY_THRESHOLD}")
        threshold = DEFAULT_SIMILARITY_THRESHOLD

    logger.info(f"Grouping {len(paths)} frames by color histogram (threshold={threshold})")

    try:
        previous: Optional[ColorHistogram] = compute_histogram_from_path(paths[0], bins_per_channel)
    except FrameDecodeError as e:
        raise FrameDecodeError(f"Failed to compute histogram for frame 0: {e}", path=paths[0]) from e

    boundaries: List[Tuple[int, int]] = []
    current_start = 0

    indices = tqdm(
        range(1, len(paths)),
        total=len(paths) - 1,
        desc="Grouping frames",
        unit="frame",
        disable=not show_progress
    )
    for i in indices:
        try:
            current = compute_histogram_from_path(paths[i], bins_per_channel)
        except FrameDecodeError as e:
            logger.warning(f"Frame {i}: {e}; starting new group")
            boundaries.append((current_start, i - 1))
            current_start = i
            previous = None
            continue

        if previous is not None:
            correlation = compare_histograms(previous, current)
            if correlation < threshold:
                logger.debug(f"Scene change at frame {i} (correlation={correlation:.4f})")
                boundaries.append((current_start, i - 1))
                current_start = i

        previous = current

    boundaries.append((current_start, len(paths) - 1))

    groups = [_build_group(paths, start, end) for start, end in boundaries]

    logger.info(
        f"Frame grouping complete: {len(groups)} groups from {len(paths)} frames "
        f"(avg {len(paths) / len(groups):.1f} frames/group)"
    )
    for i, g in enumerate(groups):
        logger.debug(
            f"Group {i}: frames {g.start_index}-{g.end_index}, "
            f"representative {g.representative_index} ({g.frame_count} frames)"
        )

    return groups
