"""Sync command — npcsync sync."""

from __future__ import annotations

import sys
import time

import click
from rich import box
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from npcsync.cli.main import (
    STATE_STYLES,
    console,
    data_dir_option,
    load_config_or_exit,
    require_data_dirs,
    setup_logging,
)
from npcsync.cli.progress import SyncProgress


@click.command()
@data_dir_option
@click.option("--all", "force", is_flag=True, default=False,
              help="Regenerate every character, not only those whose memories changed")
@click.option("--concurrency", "-j", default=None, type=click.IntRange(min=1),
              help="Characters processed in parallel (default from config.json, 3)")
@click.option("--verbose", "-v", count=True,
              help="Verbosity level: -v per-character, -vv debug/LLM details")
def sync(data_dir, force: bool, concurrency: int | None, verbose: int):
    """Condense oversized memory files and refresh character overrides.

    Only characters whose memory file changed since the last successful run
    are processed unless --all is given. Memory files at or above the
    configured maxTokens are condensed first, after a backup.
    """
    from npcsync.config import get_settings
    from npcsync.core.config import redact_api_key
    from npcsync.core.errors import ConfigError
    from npcsync.core.logging import SyncLogger, Verbosity
    from npcsync.sync.orchestrator import Synchronizer, build_generator

    setup_logging(verbose)
    require_data_dirs(data_dir)
    config = load_config_or_exit(data_dir)
    settings = get_settings()

    workers = concurrency or settings.concurrency or config.concurrency
    try:
        generator = build_generator(config, settings)
    except (ConfigError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold]Player:[/bold] {config.player_name or '-'}  "
            f"[bold]Character folder:[/bold] {config.current_character}\n"
            f"[bold]Data:[/bold] {data_dir}\n"
            f"[bold]Model:[/bold] {config.llm.provider}/{config.llm.model} "
            f"(key {redact_api_key(config.llm.resolve_api_key())})\n"
            f"[bold]Mode:[/bold] {'all characters' if force else 'changed characters only'}, "
            f"condense at {config.size_budget} tokens\n"
            f"[bold]Concurrency:[/bold] {workers}",
            title="[bold cyan]npcsync[/bold cyan]",
            border_style="cyan",
        )
    )

    sync_logger = SyncLogger(
        verbosity=Verbosity(min(verbose, Verbosity.DEBUG)),
        log_dir=settings.log_dir,
        console=console,
    )
    progress = SyncProgress()
    synchronizer = Synchronizer.from_config(
        data_dir,
        config,
        generator,
        concurrency=workers,
        sync_logger=sync_logger,
        progress=progress,
    )

    start_time = time.time()
    with Live(progress, console=console, refresh_per_second=4, transient=True):
        result = synchronizer.run(force=force)
    elapsed = time.time() - start_time

    if not result.units:
        console.print(f"[dim]No character folders found in {synchronizer.conversations_dir}.[/dim]")
        return

    table = Table(title="Sync Summary", box=box.ROUNDED)
    table.add_column("Character", style="bold", no_wrap=True)
    table.add_column("Result", justify="center")
    table.add_column("Tokens", justify="right")
    table.add_column("Condensed", justify="center")
    table.add_column("Detail", style="dim")

    for unit in result.units:
        style = STATE_STYLES.get(unit.state.value, "white")
        table.add_row(
            unit.name,
            f"[{style}]{unit.state.value}[/{style}]",
            f"{unit.estimated_size}/{config.size_budget}",
            "yes" if unit.condensed else "",
            unit.reason,
        )

    console.print(table)
    console.print(
        f"\n[bold]Total:[/bold] {result.recorded} updated, {result.skipped} up to date, "
        f"{result.failed} failed, {result.unprocessable} without memories"
    )
    console.print(f"[bold]Time:[/bold] {elapsed:.1f}s")

    run_log = sync_logger.run_log
    if run_log.total_llm_calls:
        console.print(
            f"[bold]LLM calls:[/bold] {run_log.total_llm_calls}, "
            f"[bold]Tokens:[/bold] {run_log.total_tokens:,}, "
            f"[bold]Est. cost:[/bold] ${run_log.total_cost_estimate:.4f}"
        )
    if sync_logger.log_path is not None:
        console.print(f"[dim]Log: {sync_logger.log_path}[/dim]")

    if result.failed:
        sys.exit(1)
