"""Init command — write a template config.json into a data folder."""

from __future__ import annotations

import sys

import click

from npcsync.cli.main import console, data_dir_option


@click.command()
@data_dir_option
@click.option("--player-name", required=True, help="Name of the player character")
@click.option(
    "--character",
    default=None,
    help="Conversation folder to sync (default: the player name if that folder exists, else 'default')",
)
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing config.json")
def init(data_dir, player_name: str, character: str | None, force: bool):
    """Create config.json with a placeholder API key."""
    from npcsync.core.config import CONFIG_FILE_NAME, PLACEHOLDER_API_KEY, write_default_config
    from npcsync.sync.orchestrator import CONVERSATIONS_DIR

    path = data_dir / CONFIG_FILE_NAME
    if path.exists() and not force:
        console.print(
            f"[red]Error:[/red] {path} already exists. Use [bold]--force[/bold] to overwrite."
        )
        sys.exit(1)

    if character is None:
        # Skyrim keeps one folder per player; Fallout 4 uses "default"
        if (data_dir / CONVERSATIONS_DIR / player_name).is_dir():
            character = player_name
        else:
            character = "default"

    write_default_config(path, player_name=player_name, current_character=character)
    console.print(
        f"[green]Created[/green] [bold]{path}[/bold] "
        f"[dim](conversations/{character})[/dim]\n"
        f"\n"
        f"  Replace [bold]{PLACEHOLDER_API_KEY}[/bold] with your DeepSeek API key, then run:\n"
        f"  npcsync status --data-dir {data_dir}\n"
        f"  npcsync sync --data-dir {data_dir}"
    )
