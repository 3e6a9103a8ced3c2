"""npcsync CLI."""

from npcsync.cli.main import cli, main

__all__ = ["cli", "main"]
