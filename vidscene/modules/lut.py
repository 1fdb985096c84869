"""
Color LUT propagation.

An edited representative frame is compared with its original to build a 3D
color look-up table, which is then applied to every frame in the group so the
edit carries across the whole scene.
"""

import shutil
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..utils.exceptions import FrameDecodeError, MediaToolFailedError
from ..utils.temp_resources import create_temp_file
from ..utils.video_utils import run_media_tool

logger = logging.getLogger(__name__)

# Entries per channel (64**3 entries) for smooth mapping with little banding
LUT_SIZE = 64

# Sample every Nth pixel in each direction
SAMPLE_STEP = 2


def _load_rgb(path: Union[str, Path]) -> np.ndarray:
    try:
        with Image.open(path) as img:
            return np.asarray(img.convert("RGB"), dtype=np.uint8)
    except (OSError, UnidentifiedImageError) as e:
        raise FrameDecodeError(f"Failed to decode {path}: {e}", path=path) from e


def compute_lut_from_arrays(original: np.ndarray, edited: np.ndarray, lut_size: int = LUT_SIZE) -> str:
    """
    Build a .cube 3D LUT mapping original colors to edited colors.

    The images may differ in size; pixels are paired by normalized position.
    Each LUT entry is the average edited color of the original pixels that
    fall in its bin. Bins with no samples map to themselves.
    """
    orig_h, orig_w = original.shape[:2]
    edit_h, edit_w = edited.shape[:2]
    if min(orig_h, orig_w, edit_h, edit_w) == 0:
        raise ValueError(f"Invalid image dimensions: original={orig_w}x{orig_h}, edited={edit_w}x{edit_h}")

    ys = np.arange(0, orig_h, SAMPLE_STEP)
    xs = np.arange(0, orig_w, SAMPLE_STEP)
    edit_ys = np.minimum(ys * edit_h // orig_h, edit_h - 1)
    edit_xs = np.minimum(xs * edit_w // orig_w, edit_w - 1)

    orig_px = original[np.ix_(ys, xs)].reshape(-1, 3).astype(np.int64)
    edit_px = edited[np.ix_(edit_ys, edit_xs)].reshape(-1, 3).astype(np.float64)

    bin_size = 256.0 / lut_size
    bins = np.minimum((orig_px / bin_size).astype(np.int64), lut_size - 1)
    flat = bins[:, 0] * lut_size * lut_size + bins[:, 1] * lut_size + bins[:, 2]

    n = lut_size ** 3
    counts = np.bincount(flat, minlength=n)
    sums = np.stack(
        [np.bincount(flat, weights=edit_px[:, c], minlength=n) for c in range(3)],
        axis=1
    )

    # Identity color of each bin, R slowest and B fastest
    steps = np.arange(lut_size) / (lut_size - 1)
    r, g, b = np.meshgrid(steps, steps, steps, indexing='ij')
    table = np.stack([r.ravel(), g.ravel(), b.ravel()], axis=1)

    sampled = counts > 0
    table[sampled] = sums[sampled] / counts[sampled][:, np.newaxis] / 255.0
    table = np.clip(table, 0.0, 1.0)

    # .cube files list entries with red varying fastest
    ordered = table.reshape(lut_size, lut_size, lut_size, 3).transpose(2, 1, 0, 3).reshape(-1, 3)

    lines = [
        "# Generated by vidscene",
        'TITLE "Scene Edit LUT"',
        f"LUT_3D_SIZE {lut_size}",
        "",
    ]
    lines.extend(f"{cr:.6f} {cg:.6f} {cb:.6f}" for cr, cg, cb in ordered)
    return "\n".join(lines) + "\n"


def compute_color_lut(original_path: Path, edited_path: Path, lut_size: int = LUT_SIZE) -> str:
    """
    Build a .cube LUT from an original frame and its edited version.

    Raises:
        FrameDecodeError: Either image cannot be decoded
    """
    logger.debug(f"Computing color LUT {original_path} -> {edited_path}")
    return compute_lut_from_arrays(_load_rgb(original_path), _load_rgb(edited_path), lut_size)


def apply_lut_to_frames(
    frame_paths: Sequence[Path],
    lut_content: str,
    output_dir: Path,
    ffmpeg_path: str = "ffmpeg",
    temp_dir: Optional[Path] = None,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None
) -> List[Path]:
    """
    Apply a .cube LUT to frames with ffmpeg's lut3d filter.

    Output frames keep their source filenames. A frame whose LUT pass fails
    is copied through unmodified. ``timeout`` applies to each frame's pass.

    Returns:
        Paths of the written frames
    """
    if not frame_paths:
        return []

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Applying color LUT to {len(frame_paths)} frames")

    written = []
    with create_temp_file("scene-lut-", suffix=".cube", base_dir=temp_dir) as lut_file:
        lut_file.path.write_text(lut_content)

        for frame_path in frame_paths:
            frame_path = Path(frame_path)
            output_path = output_dir / frame_path.name
            args = [
                '-i', str(frame_path),
                '-vf', f"lut3d='{lut_file.path}'",
                '-qscale:v', '2',
                '-y', str(output_path),
            ]
            try:
                run_media_tool(args, tool=ffmpeg_path, cancel_event=cancel_event, timeout=timeout)
            except MediaToolFailedError as e:
                logger.warning(f"Failed to apply LUT to {frame_path.name}, copying original: {e.output[-200:]}")
                shutil.copyfile(frame_path, output_path)
            written.append(output_path)

    logger.info(f"Color LUT applied to {len(written)} frames")
    return written
