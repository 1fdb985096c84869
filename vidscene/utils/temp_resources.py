"""Temporary file and directory ownership with guaranteed release."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class TempResource:
    """
    A temporary file or directory paired with its release.

    The creator owns the resource. ``release()`` removes it the first time it
    is called and is a no-op afterwards, so it is safe to call from both a
    ``finally`` block and an explicit cleanup path. Usable as a context
    manager, in which case it is released on every exit from the block.
    """

    def __init__(self, path: Path, is_dir: bool):
        self.path = Path(path)
        self.is_dir = is_dir
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self):
        """Remove the resource. Subsequent calls do nothing."""
        if self._released:
            return
        self._released = True

        try:
            if self.is_dir:
                shutil.rmtree(self.path)
            else:
                self.path.unlink()
            logger.debug(f"Removed temporary {'directory' if self.is_dir else 'file'} {self.path}")
        except FileNotFoundError:
            logger.debug(f"Temporary path already gone: {self.path}")
        except OSError as e:
            logger.warning(f"Failed to remove temporary path {self.path}: {e}")

    def __enter__(self) -> "TempResource":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"TempResource({str(self.path)!r}, is_dir={self.is_dir}, {state})"


def _ensure_base(base_dir: Optional[Path]) -> Optional[str]:
    if base_dir is None:
        return None
    base_dir = Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    return str(base_dir)


def create_temp_dir(prefix: str, base_dir: Optional[Path] = None) -> TempResource:
    """
    Create a uniquely named temporary directory.

    Args:
        prefix: Directory name prefix (e.g. "video-frames-")
        base_dir: Parent directory, system temp dir if None

    Returns:
        TempResource owning the new directory
    """
    path = tempfile.mkdtemp(prefix=prefix, dir=_ensure_base(base_dir))
    logger.debug(f"Created temporary directory {path}")
    return TempResource(Path(path), is_dir=True)


def create_temp_file(prefix: str, suffix: str = "", base_dir: Optional[Path] = None) -> TempResource:
    """
    Create a uniquely named, empty temporary file.

    Args:
        prefix: File name prefix
        suffix: File extension including the dot (e.g. ".webm")
        base_dir: Parent directory, system temp dir if None

    Returns:
        TempResource owning the new file
    """
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=_ensure_base(base_dir))
    os.close(fd)
    logger.debug(f"Created temporary file {path}")
    return TempResource(Path(path), is_dir=False)
