"""Derived-record store — character override JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from npcsync.core.errors import atomic_write
from npcsync.core.models import DerivedRecord

logger = logging.getLogger(__name__)


class RecordStore:
    """Filesystem-backed storage for ``character_overrides/<name>.json``."""

    def __init__(self, overrides_dir: str | Path):
        self.overrides_dir = Path(overrides_dir)

    def path_for(self, name: str) -> Path:
        return self.overrides_dir / f"{name}.json"

    def load(self, name: str) -> DerivedRecord | None:
        """Load a character's record. Missing or corrupt files yield None."""
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Unreadable record for %s: %s", name, exc)
            return None
        if not raw.strip():
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.debug("Corrupt record for %s: %s", name, exc)
            return None
        return DerivedRecord.from_dict(data)

    def save(self, record: DerivedRecord) -> Path:
        """Replace a character's record atomically."""
        self.overrides_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(record.name)
        atomic_write(path, record.to_json())
        return path
