"""Fingerprint store — byte-size markers deciding whether a character is stale."""

from __future__ import annotations

import json
import logging

from npcsync.core.errors import atomic_write
from npcsync.core.models import CharacterUnit, Fingerprint

logger = logging.getLogger(__name__)


class FingerprintStore:
    """Reads and writes each character's ``lastUpdated.json``.

    A fingerprint records the transcript's byte size at the last successful
    regeneration. A transcript whose size differs from its fingerprint is
    stale. Same-size edits are not detected.
    """

    def load(self, unit: CharacterUnit) -> Fingerprint | None:
        """Return the stored fingerprint, or None when missing or unreadable."""
        path = unit.fingerprint_path
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Unreadable fingerprint for %s: %s", unit.name, exc)
            return None
        fingerprint = Fingerprint.from_dict(data)
        if fingerprint is None:
            logger.debug("Malformed fingerprint for %s, treating as absent", unit.name)
        return fingerprint

    def current_size(self, unit: CharacterUnit) -> int:
        if unit.transcript_path is None:
            return 0
        return unit.transcript_path.stat().st_size

    def is_stale(self, unit: CharacterUnit, byte_size: int | None = None) -> bool:
        """True unless a valid fingerprint matches the transcript's size.

        ``byte_size`` is the size already read by the caller; the file is
        stat'ed when it is omitted.
        """
        fingerprint = self.load(unit)
        if fingerprint is None:
            return True
        if byte_size is None:
            byte_size = self.current_size(unit)
        return not fingerprint.matches(byte_size)

    def record(self, unit: CharacterUnit, byte_size: int) -> Fingerprint:
        """Write a fresh fingerprint. Call only after a successful regeneration."""
        fingerprint = Fingerprint.now(byte_size)
        unit.directory.mkdir(parents=True, exist_ok=True)
        atomic_write(unit.fingerprint_path, json.dumps(fingerprint.to_dict(), indent=2))
        return fingerprint
