"""Custom exceptions for vidscene."""


class VidsceneError(Exception):
    """Base class for all vidscene failures."""
    pass


class InputValidationError(VidsceneError, ValueError):
    """Raised when an input cannot be processed at all (e.g. no frames)."""
    pass


class FrameDecodeError(VidsceneError):
    """Raised when a single frame image cannot be read or decoded."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class MediaToolError(VidsceneError):
    """
    Base for failures of the external media tool.

    Attributes:
        tool: Name of the tool binary (ffmpeg, ffprobe)
        output: Captured diagnostic output, empty if none was produced
    """

    def __init__(self, message: str, tool: str = "ffmpeg", output: str = ""):
        super().__init__(message)
        self.tool = tool
        self.output = output or ""

    def __str__(self) -> str:
        base = super().__str__()
        if self.output:
            return f"{base}\nOutput: {self.output.strip()}"
        return base


class MediaToolNotFoundError(MediaToolError):
    """The tool binary is not installed or not on PATH."""
    pass


class MediaToolFailedError(MediaToolError):
    """The tool ran and exited with a non-zero status."""

    def __init__(self, message: str, tool: str = "ffmpeg", output: str = "", returncode: int = None):
        super().__init__(message, tool=tool, output=output)
        self.returncode = returncode


class EmptyOutputError(MediaToolError):
    """The tool claimed success but its output is missing or empty."""
    pass


class OperationCancelledError(MediaToolError):
    """The tool invocation was cancelled by the caller or hit its deadline."""
    pass
