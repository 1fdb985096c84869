from pathlib import Path

import click
from colorama import Fore, Style

from ...config import get_settings
from ...modules.planner import (
    MAX_RECOMMENDED_DURATION,
    determine_extraction_fps,
    estimate_enhancement_time,
    estimate_frame_count,
    is_duration_recommended,
    plan_compression,
)
from ..app import cli
from ..common import _fail, _format_properties, _load_properties


@cli.command()
@click.argument('video', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(video):
    """
    Show how a video would be extracted and compressed.

    VIDEO: Path to the source video
    """
    settings = get_settings()
    properties = _load_properties(video, settings)

    try:
        print(f"\n{Fore.CYAN}Video Information:{Style.RESET_ALL}\n")
        print(f"File: {video}")
        print(f"Properties: {_format_properties(properties)}")
        print()

        fps = properties.frame_rate if properties else None
        duration = properties.duration_seconds if properties else None
        extraction_fps = determine_extraction_fps(fps, duration)
        expected = estimate_frame_count(duration, extraction_fps)

        print(f"{Fore.YELLOW}Frame Extraction:{Style.RESET_ALL}")
        print(f"  Extraction rate: {extraction_fps:.2f} fps")
        print(f"  Expected frames: {expected if expected is not None else 'unknown'}")
        if duration:
            verdict = "yes" if is_duration_recommended(duration) else f"no (over {MAX_RECOMMENDED_DURATION:.0f}s)"
            print(f"  Recommended for enhancement: {verdict}")
            print(f"  Estimated enhancement time: ~{estimate_enhancement_time(duration, fps or extraction_fps):.0f}s")
        print()

        plan = plan_compression(properties)
        print(f"{Fore.YELLOW}Compression Plan:{Style.RESET_ALL}")
        print(f"  Long edge: {plan.target_long_edge}px")
        print(f"  Frame rate: {plan.target_frame_rate:.2f} fps")
        print(f"  Video: {plan.video_codec} crf={plan.video_quality_factor} preset={plan.encoding_speed_preset}")
        print(f"  Audio: {plan.audio_codec} {plan.audio_bitrate} mono @ {plan.target_audio_sample_rate} Hz")
        print()

    except Exception as e:
        _fail(e)
