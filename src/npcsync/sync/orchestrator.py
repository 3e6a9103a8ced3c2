"""Synchronization orchestrator — per-character state machine under a bounded pool."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from npcsync.config import Settings, get_settings
from npcsync.core.config import DEFAULT_CONCURRENCY, DEFAULT_SIZE_BUDGET, SyncConfig
from npcsync.core.errors import CondensationError, RegenerationError, atomic_write
from npcsync.core.logging import SyncLogger
from npcsync.core.models import (
    CharacterUnit,
    SyncResult,
    UnitResult,
    UnitState,
    UnitStatus,
    clean_character_name,
)
from npcsync.core.tokens import estimate_tokens
from npcsync.llm.cassette import maybe_wrap_generator
from npcsync.llm.client import LLMClient
from npcsync.llm.generator import LLMGenerator, TextGenerator
from npcsync.sync.backup import try_rotate_backups
from npcsync.sync.condense import condense, needs_condensation
from npcsync.sync.fingerprint import FingerprintStore
from npcsync.sync.records import RecordStore
from npcsync.sync.regenerate import regenerate

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = "_summary_1.txt"
CONVERSATIONS_DIR = "conversations"
OVERRIDES_DIR = "character_overrides"


def conversations_root(data_dir: Path, current_character: str) -> Path:
    return data_dir / CONVERSATIONS_DIR / current_character


def overrides_root(data_dir: Path) -> Path:
    return data_dir / OVERRIDES_DIR


def missing_data_dirs(data_dir: Path) -> list[str]:
    """Names of the required Mantella folders absent from ``data_dir``."""
    return [
        name for name in (CONVERSATIONS_DIR, OVERRIDES_DIR)
        if not (data_dir / name).is_dir()
    ]


def find_transcript(directory: Path, name: str) -> Path | None:
    """Locate ``<name>_summary_1.txt``, falling back to any ``*_summary_1.txt``."""
    preferred = directory / f"{name}{TRANSCRIPT_SUFFIX}"
    if preferred.is_file():
        return preferred
    candidates = sorted(p for p in directory.glob(f"*{TRANSCRIPT_SUFFIX}") if p.is_file())
    return candidates[0] if candidates else None


def read_transcript(path: Path) -> tuple[str, int]:
    """Read a memory file once, returning its text and byte size.

    A leading BOM is dropped and undecodable bytes become U+FFFD.
    """
    data = path.read_bytes()
    return data.decode("utf-8-sig", errors="replace"), len(data)


def build_generator(config: SyncConfig, settings: Settings | None = None) -> TextGenerator:
    """Create the LLM-backed generator, wrapped for record/replay when enabled."""
    settings = settings or get_settings()
    generator = LLMGenerator(LLMClient(config.llm))
    return maybe_wrap_generator(generator, settings.cassette_mode, settings.cassette_dir)


def discover_units(conversations_dir: Path) -> list[CharacterUnit]:
    """One unit per character directory, sorted by directory name."""
    if not conversations_dir.is_dir():
        return []
    units = []
    for directory in sorted(p for p in conversations_dir.iterdir() if p.is_dir()):
        name = clean_character_name(directory.name)
        units.append(CharacterUnit(
            name=name,
            directory=directory,
            transcript_path=find_transcript(directory, name),
        ))
    return units


class Synchronizer:
    """Drives condense-then-regenerate across every character.

    Each unit runs start to finish on one worker of a fixed-size pool.
    Units share only the pool and the observers (logger, progress); a
    failed unit leaves the others running.
    """

    def __init__(
        self,
        conversations_dir: str | Path,
        overrides_dir: str | Path,
        generator: TextGenerator,
        *,
        size_budget: int = DEFAULT_SIZE_BUDGET,
        player_name: str = "",
        concurrency: int = DEFAULT_CONCURRENCY,
        size_estimator: Callable[[str], int] = estimate_tokens,
        sync_logger: SyncLogger | None = None,
        progress=None,
    ):
        if size_budget <= 0:
            raise ValueError(f"size_budget must be positive, got {size_budget}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.conversations_dir = Path(conversations_dir)
        self.records = RecordStore(overrides_dir)
        self.fingerprints = FingerprintStore()
        self.generator = generator
        self.size_budget = size_budget
        self.player_name = player_name
        self.concurrency = concurrency
        self.size_estimator = size_estimator
        self.sync_logger = sync_logger or SyncLogger()
        self.progress = progress

    @classmethod
    def from_config(
        cls,
        data_dir: str | Path,
        config: SyncConfig,
        generator: TextGenerator,
        **kwargs,
    ) -> Synchronizer:
        """Build a synchronizer for a Mantella data directory."""
        data_dir = Path(data_dir)
        kwargs.setdefault("concurrency", config.concurrency)
        return cls(
            conversations_root(data_dir, config.current_character),
            overrides_root(data_dir),
            generator,
            size_budget=config.size_budget,
            player_name=config.player_name,
            **kwargs,
        )

    def units(self) -> list[CharacterUnit]:
        return discover_units(self.conversations_dir)

    # -- Read-only status --

    def inspect(self) -> list[UnitStatus]:
        """Staleness and budget status for every unit, without generating."""
        statuses = []
        for unit in self.units():
            if unit.transcript_path is None:
                statuses.append(UnitStatus(name=unit.name, has_transcript=False))
                continue
            text, byte_size = read_transcript(unit.transcript_path)
            estimated = self.size_estimator(text)
            fingerprint = self.fingerprints.load(unit)
            statuses.append(UnitStatus(
                name=unit.name,
                has_transcript=True,
                byte_size=byte_size,
                estimated_size=estimated,
                stale=fingerprint is None or not fingerprint.matches(byte_size),
                over_budget=needs_condensation(estimated, self.size_budget),
                last_updated=fingerprint.observed_at if fingerprint else None,
            ))
        return statuses

    # -- Pass --

    def run(self, force: bool = False) -> SyncResult:
        """Process every unit and fold the per-unit results.

        With ``force`` every unit is regenerated regardless of its
        fingerprint; condensation still happens only over budget.
        """
        start = time.time()
        units = self.units()
        self.sync_logger.run_start(self.conversations_dir, len(units), force)
        logger.debug("Synchronizing %d characters with %d workers", len(units), self.concurrency)

        results: list[UnitResult | None] = [None] * len(units)
        if units:
            with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="npcsync") as pool:
                futures = {
                    pool.submit(self.process_unit, unit, force): i
                    for i, unit in enumerate(units)
                }
                for future in as_completed(futures):
                    results[futures[future]] = future.result()

        result = SyncResult(units=[r for r in results if r is not None])
        result.total_time = time.time() - start
        self.sync_logger.run_finish(result.total_time)
        return result

    def process_unit(self, unit: CharacterUnit, force: bool = False) -> UnitResult:
        """Run one unit to a terminal state. Never raises for unit-level errors."""
        result = UnitResult(name=unit.name, state=UnitState.PENDING)
        result.transitions.append(UnitState.PENDING)
        calls_before, tokens_before = self.sync_logger.unit_usage(unit.name)
        start = time.time()
        if self.progress is not None:
            self.progress.unit_start(unit.name)
        try:
            self._process(unit, result, force)
        except Exception as exc:
            stage = result.state.value
            logger.exception("Unexpected error processing %s", unit.name)
            self._fail(result, stage, f"unexpected error: {exc}")

        result.time_seconds = time.time() - start
        calls_after, tokens_after = self.sync_logger.unit_usage(unit.name)
        result.llm_calls = calls_after - calls_before
        result.tokens_used = tokens_after - tokens_before
        if self.progress is not None:
            self.progress.unit_finish(unit.name, result.state, result.time_seconds)
        return result

    def _enter(self, result: UnitResult, state: UnitState) -> None:
        result.state = state
        result.transitions.append(state)
        if self.progress is not None:
            self.progress.unit_state(result.name, state)

    def _fail(self, result: UnitResult, stage: str, reason: str) -> None:
        result.reason = reason
        self._enter(result, UnitState.FAILED)
        self.sync_logger.unit_failed(result.name, stage, reason)

    def _process(self, unit: CharacterUnit, result: UnitResult, force: bool) -> None:
        self._enter(result, UnitState.CHECKING)

        path = unit.transcript_path
        if path is None:
            self._unprocessable(result, "no memory file found")
            return
        transcript, result.byte_size = read_transcript(path)
        if not transcript.strip():
            self._unprocessable(result, "empty memory file")
            return

        result.estimated_size = self.size_estimator(transcript)
        self.sync_logger.unit_start(unit.name, result.byte_size, result.estimated_size)

        if not force and not self.fingerprints.is_stale(unit, result.byte_size):
            self._enter(result, UnitState.SKIPPED)
            self.sync_logger.unit_skipped(unit.name, result.estimated_size, self.size_budget)
            return

        previous = self.records.load(unit.name)

        if needs_condensation(result.estimated_size, self.size_budget):
            self._enter(result, UnitState.CONDENSING)
            slot, error = try_rotate_backups(path)
            if slot is not None:
                self.sync_logger.backup_created(unit.name, slot)
            else:
                self.sync_logger.backup_failed(unit.name, error or "unknown error")

            try:
                condensed = condense(
                    unit, transcript, self.generator, previous,
                    player_name=self.player_name, sync_logger=self.sync_logger,
                )
            except CondensationError as exc:
                self._fail(result, "condensing", exc.reason)
                return

            atomic_write(path, condensed)
            before = result.estimated_size
            transcript = condensed
            result.condensed = True
            result.byte_size = path.stat().st_size
            result.estimated_size = self.size_estimator(transcript)
            self.sync_logger.unit_condensed(unit.name, before, result.estimated_size)

        self._enter(result, UnitState.REGENERATING)
        try:
            record = regenerate(
                unit, transcript, self.generator, previous,
                player_name=self.player_name, sync_logger=self.sync_logger,
            )
        except RegenerationError as exc:
            self._fail(result, "regenerating", exc.reason)
            return

        self.records.save(record)
        self.fingerprints.record(unit, result.byte_size)
        self._enter(result, UnitState.RECORDED)
        self.sync_logger.unit_recorded(unit.name, result.byte_size)

    def _unprocessable(self, result: UnitResult, reason: str) -> None:
        result.reason = reason
        self._enter(result, UnitState.UNPROCESSABLE)
        self.sync_logger.unit_unprocessable(result.name, reason)
