"""npcsync error types and utilities."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str) -> None:
    """Write content to a file atomically using temp file + rename.

    Writes to a temporary file in the same directory, fsyncs it,
    then atomically replaces the target path. The previous content stays
    intact until the rename succeeds.
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.write(fd, content.encode("utf-8"))
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp, str(path))
    except BaseException:
        try:
            os.close(fd)
        except OSError:
            pass
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class NpcSyncError(Exception):
    """Base exception for npcsync."""

    pass


class ConfigError(NpcSyncError):
    """Invalid or missing configuration."""

    pass


class GenerationError(NpcSyncError):
    """The text generator failed or returned nothing usable."""

    def __init__(self, character: str, reason: str):
        self.character = character
        self.reason = reason
        super().__init__(f"{character}: {reason}")


class CondensationError(GenerationError):
    """Condensing an over-budget transcript failed."""

    pass


class RegenerationError(GenerationError):
    """Regenerating a derived record failed."""

    pass
