"""Command-line interface for ghdir."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.prompt import Confirm

from . import __version__
from .exceptions import GhdirError
from .fetcher import Fetcher
from .http.protocols import ArchiveProbe
from .locator import parse_github_url
from .logging_config import setup_logging
from .models.config import GhdirConfig
from .models.events import EventType, FetchEvent, FetchStatus
from .strategy import MIB, Strategy


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="ghdir",
        description="Download a single folder from a GitHub repository without cloning the whole project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch one folder into ./lib
  ghdir https://github.com/owner/repo/tree/main/src/lib

  # Fetch the whole default branch into the current directory
  ghdir https://github.com/owner/repo

  # Write into another directory and skip the large-download prompt
  ghdir https://github.com/owner/repo/tree/dev/docs -o ./vendor --yes
        """,
    )

    parser.add_argument(
        "url",
        help="GitHub URL (e.g., 'https://github.com/<owner>/<repo>/tree/<branch>/<path>')",
    )

    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=None,
        metavar="DIR",
        help="Directory to write the folder into (default: current directory)",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to YAML config file",
    )

    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation before very large downloads",
    )

    cache_group = parser.add_argument_group("caching")
    cache_group.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the change cache",
    )
    cache_group.add_argument(
        "--cache-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Change cache file (default: <user config dir>/ghdir/cache.json)",
    )

    network_group = parser.add_argument_group("network")
    network_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Connect/read timeout (default: 30)",
    )

    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the download progress bar",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output (debug logging)",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only print errors",
    )
    output_group.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to log file (default: console only)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def get_config(args: argparse.Namespace) -> GhdirConfig:
    """
    Build configuration from the config file and command-line overrides.

    Raises:
        ValidationError: If a value is invalid
        OSError: If the config file cannot be read
    """
    config = GhdirConfig.from_yaml_file(args.config) if args.config else GhdirConfig()

    updates: dict = {}
    if args.output_dir is not None:
        updates["output_dir"] = args.output_dir
    if args.yes:
        updates["assume_yes"] = True
    if args.no_progress or args.quiet:
        updates["show_progress"] = False
    if args.log_file is not None:
        updates["log_file"] = args.log_file
    if args.verbose:
        updates["log_level"] = "DEBUG"
    elif args.quiet:
        updates["log_level"] = "ERROR"

    cache_updates: dict = {}
    if args.no_cache:
        cache_updates["enabled"] = False
    if args.cache_file is not None:
        cache_updates["file"] = args.cache_file
    if cache_updates:
        updates["cache"] = {**config.cache.model_dump(), **cache_updates}

    if args.timeout is not None:
        updates["network"] = {**config.network.model_dump(), "timeout": args.timeout}

    if not updates:
        return config
    return GhdirConfig.model_validate({**config.model_dump(), **updates})


class ConsoleReporter:
    """Render fetch events on a rich console."""

    def __init__(self, console: Console, show_progress: bool = True, quiet: bool = False):
        self.console = console
        self.show_progress = show_progress and not quiet
        self.quiet = quiet
        self._progress: Optional[Progress] = None
        self._task = None

    def __call__(self, event: FetchEvent) -> None:
        if event.type == EventType.PROBING:
            self._say("\nChecking repository...")
        elif event.type == EventType.STRATEGY_SELECTED and event.strategy == Strategy.FULL_DOWNLOAD:
            self._say("\nDownloading archive...")
        elif event.type == EventType.SPARSE_CHECKOUT_STARTED:
            self._say("\nArchive is large, switching to git sparse-checkout...")
        elif event.type == EventType.DOWNLOAD_STARTED:
            self._start(event.total)
        elif event.type == EventType.DOWNLOAD_PROGRESS:
            if self._progress is not None:
                self._progress.advance(self._task, event.nbytes)
        elif event.type == EventType.DOWNLOAD_FINISHED:
            self.stop()

    def _say(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message)

    def _start(self, total: Optional[int]) -> None:
        if not self.show_progress:
            return
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        self._progress.start()
        self._task = self._progress.add_task("Downloading", total=total)

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None

    def confirm(self, probe: ArchiveProbe) -> bool:
        """Ask whether to continue with a very large download."""
        size_mb = (probe.content_length or 0) // MIB
        self.console.print(
            f"[bold dark_orange]Warning: the archive is large ({size_mb} MB). "
            "This may take a long time and use a lot of bandwidth.[/bold dark_orange]"
        )
        try:
            return Confirm.ask("Continue?", console=self.console, default=False)
        except EOFError:
            return False


def display_path(path: Optional[Path]) -> str:
    """Render a result path the way a user would type it ("./lib")."""
    if path is None or path == Path("."):
        return "./"
    if path.is_absolute():
        return str(path)
    return f"./{path.as_posix()}"


def run_fetch(args: argparse.Namespace) -> int:
    """Run a fetch with the given arguments."""
    console = Console()

    try:
        config = get_config(args)
    except Exception as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return 1

    setup_logging(
        level=config.log_level,
        log_file=str(config.log_file) if config.log_file else None,
    )

    try:
        target = parse_github_url(args.url, default_branch=config.default_branch)
    except GhdirError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    if not args.quiet:
        console.print("[bold cyan] ghdir • Download a folder from GitHub [/bold cyan]")
        console.print(f" {target.owner}/{target.repository} • {target.branch}")
        if target.subfolder:
            console.print(f" Folder: {target.subfolder}")

    reporter = ConsoleReporter(console, show_progress=config.show_progress, quiet=args.quiet)

    try:
        with Fetcher(config, confirm=reporter.confirm, on_event=reporter) as fetcher:
            result = fetcher.fetch(target)
    except GhdirError as e:
        reporter.stop()
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1
    except KeyboardInterrupt:
        reporter.stop()
        console.print("[bold red]Interrupted.[/bold red]")
        return 130

    if result.status == FetchStatus.DECLINED:
        console.print("Aborted.")
        return 0

    if args.quiet:
        return 0

    if result.status == FetchStatus.UNCHANGED:
        console.print("[bold green]Folder is unchanged. Nothing to download.[/bold green]")
        return 0

    console.print(f"\n[bold green]Done! Fetched {result.entries} files/folders[/bold green]")
    console.print(f" → [bold green]{display_path(result.path)}[/bold green]")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_fetch(args)


if __name__ == "__main__":
    sys.exit(main())
