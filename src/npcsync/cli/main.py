"""npcsync CLI — main entry point and shared utilities."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console

console = Console()

STATE_STYLES = {
    "recorded": "green",
    "skipped": "cyan",
    "failed": "red",
    "unprocessable": "dim",
}


def setup_logging(verbose: int) -> None:
    """Route module loggers to stderr; debug detail only at -vv."""
    level = logging.DEBUG if verbose >= 2 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _resolve_data_dir(
    ctx: click.Context, param: click.Parameter, value: str | None,
) -> Path:
    """Click callback: default to NPCSYNC_DATA_DIR, then the current directory."""
    if value is not None:
        return Path(value)
    from npcsync.config import get_settings

    return get_settings().data_dir


def data_dir_option(fn):
    """Shared --data-dir option pointing at a Mantella game data folder."""
    return click.option(
        "--data-dir",
        default=None,
        callback=_resolve_data_dir,
        type=click.Path(file_okay=False),
        help="Mantella data folder, e.g. Data/Skyrim (default: $NPCSYNC_DATA_DIR or .)",
    )(fn)


def require_data_dirs(data_dir: Path) -> None:
    """Exit with an error when conversations/ or character_overrides/ is missing."""
    from npcsync.sync.orchestrator import missing_data_dirs

    missing = missing_data_dirs(data_dir)
    if missing:
        console.print(
            f"[red]Error:[/red] {data_dir} is not a Mantella data folder "
            f"(missing: {', '.join(missing)}). Point --data-dir at e.g. Data/Skyrim or Data/Fallout4."
        )
        sys.exit(1)


def load_config_or_exit(data_dir: Path):
    """Load config.json from the data dir, printing a readable error on failure."""
    from npcsync.core.config import CONFIG_FILE_NAME, load_config
    from npcsync.core.errors import ConfigError

    path = data_dir / CONFIG_FILE_NAME
    if not path.exists():
        console.print(
            f"[red]Error:[/red] {path} not found. "
            "Run [bold]npcsync init --player-name NAME[/bold] to create one."
        )
        sys.exit(1)
    try:
        return load_config(path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        console.print(f"\nPlease correct {path} and try again.")
        sys.exit(1)


@click.group()
@click.version_option(package_name="npcsync")
def main():
    """npcsync — keep Mantella character profiles in step with their memories."""
    pass


def cli():
    """Entrypoint that loads .env before running the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    main()


# Import subcommand modules to register commands
from npcsync.cli.init_commands import init  # noqa: E402
from npcsync.cli.status_commands import status  # noqa: E402
from npcsync.cli.sync_commands import sync  # noqa: E402

main.add_command(sync)
main.add_command(status)
main.add_command(init)
