"""Tests for the scene pipeline."""

import threading
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from vidscene.config import Settings
from vidscene.pipeline import ScenePipeline
from vidscene.utils.exceptions import MediaToolFailedError, OperationCancelledError

from .conftest import BLUE, RED, FakeExtraction, write_solid_frame


class FakeReassembly:
    """Records the frames present when reassembly runs."""

    def __init__(self):
        self.frame_names = None

    def __call__(self, frame_dir, original_video_path, output_path, fps, **kwargs):
        self.frame_names = sorted(p.name for p in Path(frame_dir).iterdir())
        Path(output_path).write_bytes(b"video")
        return output_path


def fake_apply_lut(frame_paths, lut_content, output_dir, **kwargs):
    written = []
    for frame in frame_paths:
        out = Path(output_dir) / Path(frame).name
        out.write_bytes(b"graded")
        written.append(out)
    return written


@pytest.fixture
def fakes():
    extraction = FakeExtraction([RED] * 3 + [BLUE] * 3)
    reassembly = FakeReassembly()
    apply_lut = Mock(side_effect=fake_apply_lut)
    with patch("vidscene.pipeline.extract_frames", side_effect=extraction), \
            patch("vidscene.pipeline.reassemble_video", side_effect=reassembly), \
            patch("vidscene.pipeline.apply_lut_to_frames", apply_lut):
        yield extraction, reassembly, apply_lut


def test_pipeline_initialization(settings):
    """Test that pipeline initializes correctly."""
    pipeline = ScenePipeline(settings)

    assert pipeline.settings is settings
    assert settings.temp_dir.is_dir()


def test_settings_validation():
    """Out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        Settings(similarity_threshold=1.5)
    with pytest.raises(ValidationError):
        Settings(histogram_bins=0)


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDSCENE_TEMP_DIR", str(tmp_path / "env-temp"))
    monkeypatch.setenv("VIDSCENE_SIMILARITY_THRESHOLD", "0.8")

    settings = Settings()

    assert settings.similarity_threshold == 0.8
    assert settings.temp_dir == tmp_path / "env-temp"


class TestRun:
    """Tests for ScenePipeline.run."""

    def test_without_editor(self, settings, video, tmp_path, fakes):
        extraction, reassembly, apply_lut = fakes
        stages = []

        result = ScenePipeline(settings).run(
            video, tmp_path / "out" / "enhanced.mp4", progress_callback=lambda s, m: stages.append(s)
        )

        assert result['output_video'].read_bytes() == b"video"
        assert result['total_frames'] == 6
        assert result['total_groups'] == 2
        assert result['extraction_fps'] == 30.0
        assert result['edited_groups'] == []
        assert [(g.start_index, g.end_index) for g in result['groups']] == [(0, 2), (3, 5)]

        assert reassembly.frame_names == [f"frame_00000{i}.jpg" for i in range(1, 7)]
        apply_lut.assert_not_called()
        assert stages[0] == "EXTRACT"
        assert stages[-2:] == ["REASSEMBLE", "COMPLETE"]

        assert extraction.results[0].released
        assert list(settings.temp_dir.iterdir()) == []

    def test_editor_edit_propagates_to_group(self, settings, video, tmp_path, fakes):
        _, reassembly, apply_lut = fakes
        edited = write_solid_frame(tmp_path / "edited.png", (240, 60, 60))
        calls = []

        def editor(group, index):
            calls.append((index, group.representative_index))
            return edited if index == 0 else None

        result = ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", frame_editor=editor)

        assert calls == [(0, 1), (1, 4)]
        assert result['edited_groups'] == [0]
        apply_lut.assert_called_once()
        assert [Path(p).name for p in apply_lut.call_args.args[0]] == [f"frame_00000{i}.jpg" for i in (1, 2, 3)]
        assert apply_lut.call_args.args[1].startswith("#")
        assert len(reassembly.frame_names) == 6

    def test_tool_timeout_reaches_lut_passes(self, video, tmp_path, fakes):
        apply_lut = fakes[2]
        settings = Settings(temp_dir=tmp_path / "temp", tool_timeout_seconds=42)
        edited = write_solid_frame(tmp_path / "edited.png", (240, 60, 60))

        ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", frame_editor=lambda g, i: edited)

        assert apply_lut.call_count == 2
        assert all(c.kwargs["timeout"] == 42 for c in apply_lut.call_args_list)

    def test_editor_failure_keeps_original_frames(self, settings, video, tmp_path, fakes):
        _, reassembly, apply_lut = fakes

        def editor(group, index):
            raise RuntimeError("editing service unavailable")

        result = ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", frame_editor=editor)

        assert result['edited_groups'] == []
        apply_lut.assert_not_called()
        assert len(reassembly.frame_names) == 6

    def test_undecodable_edit_is_skipped(self, settings, video, tmp_path, fakes):
        _, reassembly, apply_lut = fakes
        broken = tmp_path / "broken.png"
        broken.write_bytes(b"not an image")

        result = ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", frame_editor=lambda g, i: broken)

        assert result['edited_groups'] == []
        apply_lut.assert_not_called()
        assert len(reassembly.frame_names) == 6

    def test_reassembly_failure_releases_resources(self, settings, video, tmp_path, fakes):
        extraction = fakes[0]
        failure = MediaToolFailedError("ffmpeg exited with status 1", output="Conversion failed!", returncode=1)

        with patch("vidscene.pipeline.reassemble_video", side_effect=failure):
            with pytest.raises(MediaToolFailedError) as exc_info:
                ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4")

        assert "Conversion failed!" in str(exc_info.value)
        assert extraction.results[0].released
        assert list(settings.temp_dir.iterdir()) == []

    def test_cancelled_before_grouping(self, settings, video, tmp_path, fakes):
        extraction = fakes[0]
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", cancel_event=cancel)

        assert extraction.results[0].released
        assert not (tmp_path / "enhanced.mp4").exists()

    def test_threshold_override(self, settings, video, tmp_path, fakes):
        from vidscene.modules import grouper

        with patch("vidscene.pipeline.group_frames_by_histogram", wraps=grouper.group_frames_by_histogram) as group:
            ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4", threshold=0.5)
            ScenePipeline(settings).run(video, tmp_path / "enhanced.mp4")

        assert [c.kwargs["threshold"] for c in group.call_args_list] == [0.5, settings.similarity_threshold]


def test_group_returns_live_extraction(settings, video, fakes):
    extraction, groups = ScenePipeline(settings).group(video)

    with extraction:
        assert len(groups) == 2
        assert all(Path(p).exists() for g in groups for p in g.frame_paths)

    assert extraction.released


def test_compress_uses_settings(settings, video):
    with patch("vidscene.pipeline.compress_video") as compress:
        ScenePipeline(settings).compress(video)

    assert compress.call_args.kwargs["temp_dir"] == settings.temp_dir
    assert compress.call_args.kwargs["ffmpeg_path"] == settings.ffmpeg_path
