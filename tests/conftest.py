"""Shared fixtures for vidscene tests."""

import pytest
from PIL import Image

from vidscene.config import Settings
from vidscene.modules.extractor import FrameExtractionResult
from vidscene.utils.temp_resources import create_temp_dir


RED = (200, 30, 30)
BLUE = (30, 30, 200)
GREEN = (30, 200, 30)


def write_solid_frame(path, color, size=(16, 12)):
    """Write a single-color image; the format follows the extension."""
    Image.new("RGB", size, color).save(path)
    return path


def write_frames(directory, colors, suffix=".png"):
    """Write one solid frame per color, named frame_000001<suffix>, ..."""
    directory.mkdir(parents=True, exist_ok=True)
    return [
        write_solid_frame(directory / f"frame_{i + 1:06d}{suffix}", color)
        for i, color in enumerate(colors)
    ]


@pytest.fixture
def settings(tmp_path):
    """Settings with temporary directories under tmp_path."""
    return Settings(temp_dir=tmp_path / "temp")


@pytest.fixture
def video(tmp_path):
    """A placeholder source video; tests patch out the tools that would read it."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 64)
    return path


class FakeExtraction:
    """Stands in for extract_frames, writing solid frames to a real temp dir."""

    def __init__(self, colors):
        self.colors = colors
        self.results = []

    def __call__(self, video_path, properties=None, temp_dir=None, **kwargs):
        resource = create_temp_dir("video-frames-", base_dir=temp_dir)
        paths = write_frames(resource.path, self.colors, suffix=".jpg")
        result = FrameExtractionResult(
            frame_dir=resource.path,
            frame_paths=paths,
            original_fps=30.0,
            extraction_fps=30.0,
            total_frames=len(paths),
            _resource=resource,
        )
        self.results.append(result)
        return result
