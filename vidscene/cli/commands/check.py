import click
from colorama import Fore, Back, Style

from ...config import get_settings
from ...utils.video_utils import check_ffmpeg_available

from ..app import cli

_OK = f"{Style.BRIGHT}{Fore.GREEN}{Back.LIGHTBLACK_EX} ✔ {Style.RESET_ALL}"
_BAD = f"{Style.BRIGHT}{Fore.RED} ✗ {Style.RESET_ALL}"


@cli.command()
def check():
    """
    Check configuration and external tool availability.
    """
    print(f"\n{Fore.CYAN}Checking vidscene configuration...{Style.RESET_ALL}\n")

    settings = get_settings()

    print("Directories:")
    temp_exists = settings.temp_dir.exists()
    print(f"  Temp: {settings.temp_dir} {_OK if temp_exists else _BAD}")
    print()

    print("Dependencies:")
    all_ok = True
    for name, tool in (('ffmpeg', settings.ffmpeg_path), ('ffprobe', settings.ffprobe_path)):
        error = check_ffmpeg_available(tool)
        if error is None:
            print(f"  {name}: {_OK}")
        else:
            print(f"  {name}: {_BAD} Not found")
            all_ok = False
    print()

    print("Settings:")
    print(f"  Similarity threshold: {settings.similarity_threshold}")
    print(f"  Histogram bins: {settings.histogram_bins}")
    timeout = f"{settings.tool_timeout_seconds}s" if settings.tool_timeout_seconds else "none"
    print(f"  Tool timeout: {timeout}")
    print()

    if all_ok:
        print(f"{_OK} {Fore.GREEN}All external tools are available{Style.RESET_ALL}\n")
    else:
        print(f"{Fore.YELLOW}⚠ Some tools are missing. Install FFmpeg with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux){Style.RESET_ALL}\n")
        raise SystemExit(1)
