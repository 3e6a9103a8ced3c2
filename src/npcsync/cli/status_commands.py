"""Status command — show which characters a sync would touch."""

from __future__ import annotations

import click
from rich import box
from rich.table import Table

from npcsync.cli.main import console, data_dir_option, load_config_or_exit, require_data_dirs


class _NoGenerator:
    """Placeholder generator; status never generates."""

    def complete(self, prompt: str):
        raise RuntimeError("status does not call the generator")


@click.command()
@data_dir_option
def status(data_dir):
    """List characters with memory size, staleness and budget status."""
    from npcsync.sync.orchestrator import Synchronizer

    require_data_dirs(data_dir)
    config = load_config_or_exit(data_dir)
    synchronizer = Synchronizer.from_config(data_dir, config, _NoGenerator())

    statuses = synchronizer.inspect()
    if not statuses:
        console.print(f"[dim]No character folders found in {synchronizer.conversations_dir}.[/dim]")
        return

    table = Table(title=f"Characters ({config.current_character})", box=box.ROUNDED)
    table.add_column("Character", style="bold", no_wrap=True)
    table.add_column("Bytes", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Changed", justify="center")
    table.add_column("Over budget", justify="center")
    table.add_column("Last updated", style="dim")

    for s in statuses:
        if not s.has_transcript:
            table.add_row(s.name, "-", "-", "", "", "[dim]no memory file[/dim]")
            continue
        table.add_row(
            s.name,
            f"{s.byte_size:,}",
            f"{s.estimated_size}/{config.size_budget}",
            "[yellow]yes[/yellow]" if s.stale else "[dim]no[/dim]",
            "[magenta]yes[/magenta]" if s.over_budget else "",
            s.last_updated.strftime("%Y-%m-%d %H:%M") if s.last_updated else "never",
        )

    console.print(table)
    pending = sum(1 for s in statuses if s.has_transcript and s.stale)
    over = sum(1 for s in statuses if s.over_budget)
    console.print(f"\n[bold]{pending}[/bold] to update, [bold]{over}[/bold] to condense")
