import shutil
from pathlib import Path

import click
from colorama import Fore, Style

from ...config import get_settings
from ...pipeline import ScenePipeline
from ...utils.exceptions import VidsceneError
from ..app import cli
from ..common import _fail, _load_properties
from ..progress import ProgressDisplay


@cli.command()
@click.argument('video', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--output', '-o',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Output path (default: <video>.compressed.webm next to the source)'
)
def compress(video, output):
    """
    Compress a video to AV1/Opus for upload, never upscaling.

    VIDEO: Path to the source video
    """
    settings = get_settings()
    pipeline = ScenePipeline(settings)
    output = output or video.with_name(f"{video.stem}.compressed.webm")

    try:
        ProgressDisplay.show("PROBE", f"Reading properties of {video}")
        properties = _load_properties(video, settings)

        ProgressDisplay.show("COMPRESS", f"Compressing {video.name}...")
        with pipeline.compress(video, properties) as compressed:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(compressed.path, output)

            ProgressDisplay.show("COMPLETE", f"Wrote {output}")
            ProgressDisplay.field(
                "Size",
                f"{compressed.input_size_bytes:,} -> {compressed.size_bytes:,} bytes ({compressed.compression_ratio:.1f}x)"
            )
            ProgressDisplay.field(
                "Plan",
                f"{compressed.plan.target_long_edge}px, {compressed.plan.target_frame_rate:.2f} fps, "
                f"{compressed.plan.target_audio_sample_rate} Hz"
            )
            print()

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Operation cancelled by user.{Style.RESET_ALL}")
        raise SystemExit(1)
    except VidsceneError as e:
        _fail(e)
