import logging
from pathlib import Path

import click
from colorama import init as colorama_init

from .logging import DEFAULT_LOG_FILE, configure_logging

# Initialize colorama for cross-platform colored output
colorama_init()


@click.group()
@click.version_option(version='0.1.0')
@click.option('--verbose', '-v', is_flag=True, default=False, help='Echo debug logging to the console')
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_LOG_FILE,
    show_default=True,
    help='File receiving the full debug log'
)
def cli(verbose, log_file):
    """
    vidscene - Scene grouping and compression for video pipelines

    Split videos into scene groups so per-scene work runs once per scene,
    and compress videos for upload without upscaling anything.
    """
    configure_logging(log_file, logging.DEBUG if verbose else logging.INFO)


from .commands import check as _check  # noqa: E402,F401
from .commands import compress as _compress  # noqa: E402,F401
from .commands import enhance as _enhance  # noqa: E402,F401
from .commands import group as _group  # noqa: E402,F401
from .commands import info as _info  # noqa: E402,F401
