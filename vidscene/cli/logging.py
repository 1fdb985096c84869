"""Root logger setup for the CLI: a full DEBUG log file and a colored console."""

import logging
import re
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = Path('vidscene.log')

_BLUE = '\033[94m'
_RESET = '\033[0m'

# Anything with a path separator, or a bare media/data file name
_PATH_RE = re.compile(
    r'(?:'
    r'[\w./\\-]+/[\w./\\-]+'
    r'|'
    r'\w[\w._-]*\.(?:mp4|mov|mkv|webm|avi|jpg|jpeg|png|cube|json|log)'
    r')'
)

_console_handler: Optional[logging.Handler] = None


def highlight_paths(text: str) -> str:
    """Render file paths in ``text`` in bright blue."""
    return _PATH_RE.sub(lambda m: f"{_BLUE}{m.group()}{_RESET}", text)


class _ColorStreamFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return highlight_paths(super().format(record))


def configure_logging(log_file: Path = DEFAULT_LOG_FILE, console_level: int = logging.INFO):
    """
    Attach the file and console handlers to the root logger.

    Handlers are attached once per process; later calls only change the
    console level.

    Args:
        log_file: File receiving every record at DEBUG
        console_level: Minimum level echoed to stderr
    """
    global _console_handler
    if _console_handler is not None:
        set_console_level(console_level)
        return

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    _console_handler = logging.StreamHandler()
    _console_handler.setLevel(console_level)
    _console_handler.setFormatter(_ColorStreamFormatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(file_handler)
    root.addHandler(_console_handler)


def set_console_level(level: int):
    """Change how much is echoed to the console; the log file always gets DEBUG."""
    if _console_handler is not None:
        _console_handler.setLevel(level)
