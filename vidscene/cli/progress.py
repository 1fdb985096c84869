"""Stage-colored progress lines for long-running commands."""

from colorama import Fore, Style

from .logging import highlight_paths

# One color per pipeline stage; unknown stages print in white
STAGE_COLORS = {
    'PROBE': Fore.CYAN,
    'EXTRACT': Fore.CYAN,
    'GROUP': Fore.BLUE,
    'EDIT': Fore.MAGENTA,
    'REASSEMBLE': Fore.GREEN,
    'COMPRESS': Fore.YELLOW,
    'COMPLETE': Fore.GREEN,
}


class ProgressDisplay:
    """Prints ``[STAGE] message`` lines and indented result fields."""

    @staticmethod
    def show(stage: str, message: str):
        """Print one progress line; usable as a pipeline progress_callback."""
        color = STAGE_COLORS.get(stage, Fore.WHITE)
        print(f"{color}[{stage}]{Style.RESET_ALL} {highlight_paths(message)}")

    @staticmethod
    def field(label: str, value):
        print(f"  {label}: {Fore.CYAN}{value}{Style.RESET_ALL}")
