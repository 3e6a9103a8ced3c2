"""Two-slot backup rotation for transcripts about to be overwritten."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_DIR_NAME = "backup"
BACKUP_SLOTS = ("summary_backup_1.txt", "summary_backup_2.txt")


def backup_paths(transcript_path: Path) -> tuple[Path, Path]:
    """Return (slot 1, slot 2) for a transcript; slot 1 is the most recent."""
    backup_dir = transcript_path.parent / BACKUP_DIR_NAME
    return backup_dir / BACKUP_SLOTS[0], backup_dir / BACKUP_SLOTS[1]


def rotate_backups(transcript_path: Path) -> Path:
    """Shift slot 1 into slot 2 and copy the live transcript into slot 1.

    Whatever was in slot 2 is discarded. Returns the slot 1 path.

    Raises:
        OSError: if any rotation step fails.
    """
    slot1, slot2 = backup_paths(transcript_path)
    slot1.parent.mkdir(parents=True, exist_ok=True)

    if slot2.exists():
        slot2.unlink()
    if slot1.exists():
        os.replace(slot1, slot2)
    shutil.copyfile(transcript_path, slot1)
    return slot1


def try_rotate_backups(transcript_path: Path) -> tuple[Path | None, str | None]:
    """Rotate backups without raising.

    Returns (slot 1 path, None) on success or (None, error message) on
    failure. Condensation proceeds in both cases.
    """
    try:
        return rotate_backups(transcript_path), None
    except OSError as exc:
        logger.warning("Could not back up %s: %s", transcript_path, exc)
        return None, str(exc)
