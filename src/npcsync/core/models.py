"""Core data models for npcsync."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

NAME_SEPARATOR = "-"


def clean_character_name(raw: str) -> str:
    """Strip the trailing identifier suffix from a character directory name.

    ``"Anya Korolova - 0017EA"`` becomes ``"Anya Korolova"``. Names without
    a separator are only trimmed.
    """
    head, sep, _ = raw.rpartition(NAME_SEPARATOR)
    if not sep or not head.strip():
        return raw.strip()
    return head.strip()


@dataclass(frozen=True)
class CharacterUnit:
    """One character's processing target for a single pass."""

    name: str
    directory: Path
    transcript_path: Path | None = None

    @property
    def fingerprint_path(self) -> Path:
        return self.directory / "lastUpdated.json"


@dataclass(frozen=True)
class Fingerprint:
    """Size of the transcript the last successful regeneration consumed."""

    byte_size: int
    observed_at: datetime

    def matches(self, byte_size: int) -> bool:
        return self.byte_size == byte_size

    def to_dict(self) -> dict:
        """Serialize to a plain dict suitable for JSON storage."""
        return {
            "byteSize": self.byte_size,
            "lastUpdated": self.observed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Fingerprint | None:
        """Deserialize from a dict. Returns None if data is missing or malformed."""
        if not isinstance(data, dict):
            return None
        size = data.get("byteSize")
        stamp = data.get("lastUpdated")
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            return None
        if not isinstance(stamp, str):
            return None
        try:
            observed = datetime.fromisoformat(stamp)
        except ValueError:
            return None
        return cls(byte_size=size, observed_at=observed)

    @classmethod
    def now(cls, byte_size: int) -> Fingerprint:
        return cls(byte_size=byte_size, observed_at=datetime.now(timezone.utc))


@dataclass(frozen=True)
class DerivedRecord:
    """A character override: profile text followed by a biography.

    Serialized with the ``bio`` key, which is what Mantella reads from
    ``character_overrides/<name>.json``.
    """

    name: str
    profile: str

    def to_json(self) -> str:
        return json.dumps({"name": self.name, "bio": self.profile}, indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> DerivedRecord | None:
        if not isinstance(data, dict):
            return None
        profile = data.get("bio", data.get("profile"))
        name = data.get("name", "")
        if not isinstance(profile, str) or not isinstance(name, str):
            return None
        return cls(name=name, profile=profile)


class UnitState(str, Enum):
    """Lifecycle of a character unit within one pass."""

    PENDING = "pending"
    CHECKING = "checking"
    SKIPPED = "skipped"
    CONDENSING = "condensing"
    REGENERATING = "regenerating"
    RECORDED = "recorded"
    FAILED = "failed"
    UNPROCESSABLE = "unprocessable"

    @property
    def terminal(self) -> bool:
        return self in (UnitState.SKIPPED, UnitState.RECORDED, UnitState.FAILED, UnitState.UNPROCESSABLE)

    @property
    def succeeded(self) -> bool:
        return self in (UnitState.SKIPPED, UnitState.RECORDED)


@dataclass
class UnitResult:
    """Outcome of processing one character unit."""

    name: str
    state: UnitState
    condensed: bool = False
    byte_size: int = 0
    estimated_size: int = 0
    reason: str = ""
    time_seconds: float = 0.0
    llm_calls: int = 0
    tokens_used: int = 0
    transitions: list[UnitState] = field(default_factory=list)


@dataclass
class UnitStatus:
    """Read-only view of a unit for status reporting."""

    name: str
    has_transcript: bool
    byte_size: int = 0
    estimated_size: int = 0
    stale: bool = True
    over_budget: bool = False
    last_updated: datetime | None = None


@dataclass
class SyncResult:
    """Aggregate outcome of a synchronization pass."""

    units: list[UnitResult] = field(default_factory=list)
    total_time: float = 0.0

    def _count(self, state: UnitState) -> int:
        return sum(1 for u in self.units if u.state is state)

    @property
    def recorded(self) -> int:
        return self._count(UnitState.RECORDED)

    @property
    def skipped(self) -> int:
        return self._count(UnitState.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(UnitState.FAILED)

    @property
    def unprocessable(self) -> int:
        return self._count(UnitState.UNPROCESSABLE)

    @property
    def succeeded(self) -> int:
        return self.recorded + self.skipped

    @property
    def condensed(self) -> int:
        return sum(1 for u in self.units if u.condensed)

    def get(self, name: str) -> UnitResult | None:
        for unit in self.units:
            if unit.name == name:
                return unit
        return None
