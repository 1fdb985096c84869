from pathlib import Path

import click
from colorama import Fore, Style

from ...config import get_settings
from ...pipeline import ScenePipeline
from ...utils.exceptions import VidsceneError
from ..app import cli
from ..common import _fail, _load_properties
from ..progress import ProgressDisplay
from .group import export_name


def _edits_from_dir(edits_dir: Path):
    """Frame editor that picks up pre-made edits named group_NNN.jpg."""
    def editor(group, index):
        candidate = edits_dir / export_name(index)
        return candidate if candidate.is_file() else None
    return editor


@cli.command()
@click.argument('video', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--output', '-o',
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help='Output video path'
)
@click.option(
    '--edits', 'edits_dir',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help='Directory of edited representatives (group_NNN.jpg, as written by `group --export`)'
)
@click.option(
    '--threshold', '-t',
    type=click.FloatRange(0, 1, min_open=True),
    default=None,
    help='Similarity threshold; must match the one used for `group --export`'
)
def enhance(video, output, edits_dir, threshold):
    """
    Rebuild a video, propagating each scene's edited representative to its group.

    Groups without an edit keep their original frames.

    VIDEO: Path to the source video

    Examples:

        vidscene group clip.mp4 --export reps/

        (edit the images in reps/)

        vidscene enhance clip.mp4 --edits reps/ -o clip_enhanced.mp4
    """
    settings = get_settings()
    pipeline = ScenePipeline(settings)

    try:
        ProgressDisplay.show("PROBE", f"Reading properties of {video}")
        properties = _load_properties(video, settings)

        result = pipeline.run(
            video,
            output,
            frame_editor=_edits_from_dir(edits_dir) if edits_dir else None,
            properties=properties,
            threshold=threshold,
            progress_callback=ProgressDisplay.show,
        )

        ProgressDisplay.field("Output video", result['output_video'])
        ProgressDisplay.field("Frames", f"{result['total_frames']} at {result['extraction_fps']:.2f} fps")
        ProgressDisplay.field("Groups", f"{result['total_groups']} ({len(result['edited_groups'])} edited)")
        print()

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Operation cancelled by user.{Style.RESET_ALL}")
        raise SystemExit(1)
    except VidsceneError as e:
        _fail(e)
