"""Color histogram computation and comparison for scene grouping."""

from pathlib import Path
from typing import Union
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..utils.exceptions import FrameDecodeError

logger = logging.getLogger(__name__)

# Buckets per RGB channel. 32 is robust to noise and minor lighting
# changes while still separating different scenes.
HISTOGRAM_BINS = 32

# Correlation denominators below this are treated as two uniform histograms
DEGENERATE_EPSILON = 1e-10


class ColorHistogram:
    """
    Normalized 3D RGB color histogram.

    Bins are stored flat in a single float64 buffer of ``B**3`` entries,
    indexed as ``r*B*B + g*B + b`` where ``B`` is the bucket count per channel.
    """

    def __init__(self, bins_per_channel: int = HISTOGRAM_BINS):
        if not 1 <= bins_per_channel <= 256:
            raise ValueError(f"bins_per_channel must be in [1, 256], got {bins_per_channel}")
        self.bins_per_channel = bins_per_channel
        self.bins = np.zeros(bins_per_channel ** 3, dtype=np.float64)
        self.total_pixels = 0

    def index(self, r_bin: int, g_bin: int, b_bin: int) -> int:
        b = self.bins_per_channel
        return r_bin * b * b + g_bin * b + b_bin

    def __len__(self) -> int:
        return len(self.bins)

    def __repr__(self) -> str:
        return f"ColorHistogram(bins_per_channel={self.bins_per_channel}, total_pixels={self.total_pixels})"


def _to_rgb_array(image: Union[Image.Image, np.ndarray]) -> np.ndarray:
    """Return an HxWx3 uint8 array, truncating wider channels to 8 bits."""
    if isinstance(image, Image.Image):
        if image.mode in ("I;16", "I;16B", "I;16L", "I"):
            # 16-bit grayscale: keep the high byte and replicate to RGB
            gray = np.asarray(image, dtype=np.uint32) >> 8
            gray = np.clip(gray, 0, 255).astype(np.uint8)
            return np.repeat(gray[..., np.newaxis], 3, axis=2)
        return np.asarray(image.convert("RGB"), dtype=np.uint8)

    array = np.asarray(image)
    if array.ndim == 2:
        array = np.repeat(array[..., np.newaxis], 3, axis=2)
    if array.ndim != 3 or array.shape[2] < 3:
        raise ValueError(f"Expected an HxWx3 or HxWx4 image array, got shape {array.shape}")
    array = array[..., :3]

    if array.dtype == np.uint8:
        return array
    if array.dtype == np.uint16:
        return (array >> 8).astype(np.uint8)
    return np.clip(array, 0, 255).astype(np.uint8)


def compute_histogram(
    image: Union[Image.Image, np.ndarray],
    bins_per_channel: int = HISTOGRAM_BINS
) -> ColorHistogram:
    """
    Compute a normalized 3D RGB histogram in a single pass over the pixels.

    Args:
        image: Decoded image (Pillow image or HxWx3/HxWx4 array)
        bins_per_channel: Buckets per channel

    Returns:
        ColorHistogram whose bins sum to 1.0, or all zeros for an empty image
    """
    hist = ColorHistogram(bins_per_channel)
    pixels = _to_rgb_array(image).reshape(-1, 3)

    if pixels.shape[0] == 0:
        return hist

    bin_size = max(1, 256 // bins_per_channel)
    buckets = np.minimum(pixels.astype(np.int64) // bin_size, bins_per_channel - 1)

    b = bins_per_channel
    flat = buckets[:, 0] * b * b + buckets[:, 1] * b + buckets[:, 2]

    counts = np.bincount(flat, minlength=len(hist.bins))
    hist.total_pixels = int(pixels.shape[0])
    hist.bins = counts.astype(np.float64) / hist.total_pixels
    return hist


def compute_histogram_from_path(path: Union[str, Path], bins_per_channel: int = HISTOGRAM_BINS) -> ColorHistogram:
    """
    Load an image file and compute its histogram.

    Raises:
        FrameDecodeError: If the file cannot be opened or decoded
    """
    try:
        with Image.open(path) as img:
            img.load()
            return compute_histogram(img, bins_per_channel)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise FrameDecodeError(f"Failed to decode frame {path}: {e}", path=path) from e


def compare_histograms(h1: ColorHistogram, h2: ColorHistogram) -> float:
    """
    Pearson correlation coefficient between two histograms.

    Returns a value in [-1, 1]: 1.0 for identical distribution shape, 0.0 for
    uncorrelated, negative for inverse. Two numerically uniform histograms
    (near-zero denominator) are defined to be identical.
    """
    if len(h1.bins) != len(h2.bins):
        raise ValueError(
            f"Cannot compare histograms with {len(h1.bins)} and {len(h2.bins)} bins"
        )

    d1 = h1.bins - h1.bins.mean()
    d2 = h2.bins - h2.bins.mean()

    numerator = float(np.dot(d1, d2))
    denom = float(np.sqrt(np.dot(d1, d1) * np.dot(d2, d2)))

    if denom < DEGENERATE_EPSILON:
        return 1.0

    # Rounding can push |r| a hair past 1
    return max(-1.0, min(1.0, numerator / denom))
