"""Incremental synchronization engine."""

from npcsync.sync.backup import rotate_backups, try_rotate_backups
from npcsync.sync.condense import condense, needs_condensation
from npcsync.sync.fingerprint import FingerprintStore
from npcsync.sync.orchestrator import Synchronizer, discover_units
from npcsync.sync.records import RecordStore
from npcsync.sync.regenerate import regenerate

__all__ = [
    "FingerprintStore",
    "RecordStore",
    "Synchronizer",
    "condense",
    "discover_units",
    "needs_condensation",
    "regenerate",
    "rotate_backups",
    "try_rotate_backups",
]
