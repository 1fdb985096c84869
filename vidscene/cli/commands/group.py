import json
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


def export_name(index: int) -> str:
    """File name of an exported representative frame, shared with `enhance --edits`."""
    return f"group_{index:03d}.jpg"


@cli.command()
@click.argument('video', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--threshold', '-t',
    type=click.FloatRange(0, 1, min_open=True),
    default=None,
    help='Similarity threshold (default from settings, 0.92)'
)
@click.option(
    '--export', 'export_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Copy each representative frame here as group_NNN.jpg'
)
@click.option('--json', 'as_json', is_flag=True, default=False, help='Print groups as JSON')
def group(video, threshold, export_dir, as_json):
    """
    Split a video into scene groups.

    VIDEO: Path to the source video

    Examples:

        vidscene group clip.mp4

        vidscene group clip.mp4 --threshold 0.9 --export reps/
    """
    settings = get_settings()
    pipeline = ScenePipeline(settings)

    try:
        if not as_json:
            ProgressDisplay.show("PROBE", f"Reading properties of {video}")
        properties = _load_properties(video, settings)

        if not as_json:
            ProgressDisplay.show("EXTRACT", "Extracting frames...")
        extraction, groups = pipeline.group(video, properties, threshold, show_progress=not as_json)

        with extraction:
            if export_dir is not None:
                export_dir.mkdir(parents=True, exist_ok=True)
                for i, g in enumerate(groups):
                    shutil.copyfile(g.representative_path, export_dir / export_name(i))

            if as_json:
                payload = {
                    'total_frames': extraction.total_frames,
                    'extraction_fps': extraction.extraction_fps,
                    'groups': [
                        {k: v for k, v in g.to_dict().items() if k != 'frame_paths'}
                        for g in groups
                    ],
                }
                click.echo(json.dumps(payload, indent=2))
                return

            ProgressDisplay.show(
                "GROUP",
                f"{len(groups)} groups from {extraction.total_frames} frames at {extraction.extraction_fps:.2f} fps"
            )
            for i, g in enumerate(groups):
                seconds = g.start_index / extraction.extraction_fps
                print(
                    f"  {Fore.CYAN}#{i:03d}{Style.RESET_ALL} frames {g.start_index}-{g.end_index} "
                    f"({g.frame_count}), representative {g.representative_index}, starts at {seconds:.2f}s"
                )
            if export_dir is not None:
                ProgressDisplay.show("COMPLETE", f"Representatives exported to {export_dir}")

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Operation cancelled by user.{Style.RESET_ALL}")
        raise SystemExit(1)
    except VidsceneError as e:
        _fail(e)
