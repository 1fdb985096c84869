"""Tests for the command line interface."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vidscene.cli import logging as cli_logging
from vidscene.cli.app import cli
from vidscene.cli.commands.group import export_name
from vidscene.utils.exceptions import MediaToolFailedError
from vidscene.utils.video_utils import VideoProperties

from .conftest import BLUE, GREEN, RED, FakeExtraction


@pytest.fixture(autouse=True)
def temp_env(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDSCENE_TEMP_DIR", str(tmp_path / "temp"))
    monkeypatch.setattr("vidscene.cli.app.configure_logging", lambda *args, **kwargs: None)
    return tmp_path / "temp"


@pytest.fixture
def runner():
    return CliRunner()


class TestCheck:
    """Tests for the check command."""

    def test_all_tools_present(self, runner):
        with patch("vidscene.cli.commands.check.check_ffmpeg_available", return_value=None):
            result = runner.invoke(cli, ["check"])

        assert result.exit_code == 0
        assert "All external tools are available" in result.output

    def test_missing_tool(self, runner):
        with patch("vidscene.cli.commands.check.check_ffmpeg_available", return_value="ffmpeg not found in PATH"):
            result = runner.invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "Not found" in result.output


def test_info(runner, video):
    props = VideoProperties(duration_seconds=45.0, width=1920, height=1080, frame_rate=30.0, audio_sample_rate=44100)
    with patch("vidscene.cli.commands.info._load_properties", return_value=props):
        result = runner.invoke(cli, ["info", str(video)])

    assert result.exit_code == 0
    assert "Extraction rate: 15.00 fps" in result.output
    assert "Expected frames: 675" in result.output
    assert "Recommended for enhancement: yes" in result.output
    assert "Long edge: 768px" in result.output
    assert "48000 Hz" in result.output


def test_info_unknown_properties(runner, video):
    with patch("vidscene.cli.commands.info._load_properties", return_value=None):
        result = runner.invoke(cli, ["info", str(video)])

    assert result.exit_code == 0
    assert "Properties: unknown" in result.output
    assert "Expected frames: unknown" in result.output


class TestGroup:
    """Tests for the group command."""

    @pytest.fixture(autouse=True)
    def fake_extraction(self):
        extraction = FakeExtraction([RED] * 2 + [BLUE] * 3 + [GREEN])
        with patch("vidscene.pipeline.extract_frames", side_effect=extraction), \
                patch("vidscene.cli.commands.group._load_properties", return_value=None):
            yield extraction

    def test_json(self, runner, video, fake_extraction):
        result = runner.invoke(cli, ["group", str(video), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["total_frames"] == 6
        assert [(g["start_index"], g["end_index"]) for g in payload["groups"]] == [(0, 1), (2, 4), (5, 5)]
        assert "frame_paths" not in payload["groups"][0]
        assert fake_extraction.results[0].released

    def test_export(self, runner, video, tmp_path):
        export_dir = tmp_path / "reps"

        result = runner.invoke(cli, ["group", str(video), "--export", str(export_dir)])

        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in export_dir.iterdir()) == [export_name(i) for i in range(3)]
        assert "3 groups from 6 frames" in result.output

    def test_threshold_out_of_range(self, runner, video):
        result = runner.invoke(cli, ["group", str(video), "--threshold", "1.5"])

        assert result.exit_code == 2


class TestCompress:
    """Tests for the compress command."""

    def test_writes_default_output(self, runner, video, temp_env):
        def run(args, **kwargs):
            Path(args[-1]).write_bytes(b"\x01" * 16)
            return ""

        with patch("vidscene.cli.commands.compress._load_properties", return_value=None), \
                patch("vidscene.modules.compressor.run_media_tool", side_effect=run):
            result = runner.invoke(cli, ["compress", str(video)])

        assert result.exit_code == 0, result.output
        assert video.with_name("clip.compressed.webm").read_bytes() == b"\x01" * 16
        assert list(temp_env.iterdir()) == []

    def test_tool_failure_exits_with_diagnostics(self, runner, video, temp_env):
        failure = MediaToolFailedError("ffmpeg exited with status 1", output="Unknown encoder 'libsvtav1'", returncode=1)

        with patch("vidscene.cli.commands.compress._load_properties", return_value=None), \
                patch("vidscene.modules.compressor.run_media_tool", side_effect=failure):
            result = runner.invoke(cli, ["compress", str(video)])

        assert result.exit_code == 1
        assert "MediaToolFailedError" in result.output
        assert "libsvtav1" in result.output
        assert list(temp_env.iterdir()) == []


def test_enhance_with_edits(runner, video, tmp_path):
    edits = tmp_path / "edits"
    edits.mkdir()
    output = tmp_path / "enhanced.mp4"

    with patch("vidscene.cli.commands.enhance.ScenePipeline") as pipeline_cls, \
            patch("vidscene.cli.commands.enhance._load_properties", return_value=None):
        pipeline_cls.return_value.run.return_value = {
            'output_video': output,
            'total_frames': 6,
            'extraction_fps': 30.0,
            'total_groups': 2,
            'edited_groups': [0],
        }
        result = runner.invoke(cli, ["enhance", str(video), "--edits", str(edits), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "2 (1 edited)" in result.output
    kwargs = pipeline_cls.return_value.run.call_args.kwargs
    assert kwargs["frame_editor"] is not None


def test_highlight_paths():
    text = cli_logging.highlight_paths("Wrote /tmp/out/clip.webm and group_000.jpg in 3.2s")

    assert "\033[94m/tmp/out/clip.webm\033[0m" in text
    assert "\033[94mgroup_000.jpg\033[0m" in text
    assert "3.2s" in text and "\033[94m3.2s" not in text


def test_configure_logging_attaches_once(monkeypatch, tmp_path):
    monkeypatch.setattr(cli_logging, "_console_handler", None)
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    log_file = tmp_path / "run.log"

    try:
        cli_logging.configure_logging(log_file, logging.INFO)
        cli_logging.configure_logging(log_file, logging.DEBUG)

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 2
        assert cli_logging._console_handler.level == logging.DEBUG

        logging.getLogger("vidscene.test").debug("written to the log file")
        for handler in added:
            handler.flush()
        assert "written to the log file" in log_file.read_text()
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)


def test_probe_uses_configured_timeout(video, tmp_path):
    from vidscene.cli.common import _load_properties
    from vidscene.config import Settings

    settings = Settings(temp_dir=tmp_path / "temp", tool_timeout_seconds=12)
    with patch("vidscene.cli.common.probe_video_properties", return_value=VideoProperties()) as probe:
        _load_properties(video, settings)

    assert probe.call_args.kwargs["timeout"] == 12
