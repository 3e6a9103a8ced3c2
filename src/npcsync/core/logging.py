"""Structured logging and verbosity levels for npcsync passes."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any

from rich.console import Console


class Verbosity(IntEnum):
    """Verbosity levels for console output."""

    DEFAULT = 0   # Summary table only
    VERBOSE = 1   # + per-character status
    DEBUG = 2     # + LLM request/response details, timing


@dataclass
class UnitLog:
    """Per-character statistics for one pass."""

    name: str
    llm_calls: int = 0
    tokens_used: int = 0
    events: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "llm_calls": self.llm_calls,
            "tokens_used": self.tokens_used,
            "events": list(self.events),
        }


@dataclass
class RunLog:
    """Structured log of a complete synchronization pass.

    The dict format is::

        {
            "run_id": "20260101T120000Z",
            "units": {
                "Anya Korolova": {
                    "llm_calls": 3,
                    "tokens_used": 5400,
                    "events": ["backup_created", "unit_condensed", "unit_recorded"],
                },
                ...
            },
            "total_llm_calls": 3,
            "total_tokens": 5400,
            "total_time": 12.1,
            "total_cost_estimate": 0.03,
        }
    """

    run_id: str = ""
    units: dict[str, UnitLog] = field(default_factory=dict)
    total_time: float = 0.0
    total_llm_calls: int = 0
    total_tokens: int = 0
    total_cost_estimate: float = 0.0

    def get_or_create_unit(self, name: str) -> UnitLog:
        """Get existing unit log or create a new one."""
        if name not in self.units:
            self.units[name] = UnitLog(name=name)
        return self.units[name]

    def finalize(self) -> None:
        """Compute totals from unit data."""
        self.total_llm_calls = sum(u.llm_calls for u in self.units.values())
        self.total_tokens = sum(u.tokens_used for u in self.units.values())
        self.total_cost_estimate = _estimate_cost(self.total_tokens)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "units": {name: unit.to_dict() for name, unit in self.units.items()},
            "total_llm_calls": self.total_llm_calls,
            "total_tokens": self.total_tokens,
            "total_time": self.total_time,
            "total_cost_estimate": self.total_cost_estimate,
        }


class SyncLogger:
    """Structured logger for npcsync passes.

    Writes a JSONL event file to ``log_dir`` (when given) and emits console
    output via Rich based on verbosity level. Safe to call from worker
    threads.
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.DEFAULT,
        log_dir: Path | None = None,
        console: Console | None = None,
    ):
        self.verbosity = verbosity
        self.console = console or Console()
        self.log_dir = log_dir
        self._lock = threading.Lock()
        self._log_file = None
        self._finished = False
        self.log_path: Path | None = None
        self._open_run()

    def _open_run(self) -> None:
        """Start a fresh RunLog and, with a log_dir, its JSONL file."""
        self.run_log = RunLog(
            run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        )
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_path = self.log_dir / f"{self.run_log.run_id}.jsonl"
            self._log_file = open(self.log_path, "a", encoding="utf-8")

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write a JSON event to the JSONL log file and note it on the unit."""
        with self._lock:
            unit = event.get("unit")
            if unit is not None:
                self.run_log.get_or_create_unit(unit).events.append(event["event"])
            if self._log_file is not None:
                event["timestamp"] = datetime.now(timezone.utc).isoformat()
                self._log_file.write(json.dumps(event, ensure_ascii=False) + "\n")
                self._log_file.flush()

    def _console_print(self, message: str, min_verbosity: Verbosity) -> None:
        if self.verbosity >= min_verbosity:
            self.console.print(message)

    # -- Run lifecycle --

    def run_start(self, root: Path, unit_count: int, force: bool) -> None:
        with self._lock:
            if self._finished:
                self._finished = False
                self._open_run()
        self._write_event({
            "event": "run_start",
            "root": str(root),
            "unit_count": unit_count,
            "force": force,
        })

    def run_finish(self, total_time: float) -> None:
        """Log the completion of a pass and finalize stats."""
        with self._lock:
            self.run_log.total_time = total_time
            self.run_log.finalize()

        self._write_event({
            "event": "run_finish",
            "total_time": round(total_time, 3),
            "total_llm_calls": self.run_log.total_llm_calls,
            "total_tokens": self.run_log.total_tokens,
            "total_cost_estimate": round(self.run_log.total_cost_estimate, 4),
        })
        self.close()
        self._finished = True

    # -- Unit events --

    def unit_start(self, name: str, byte_size: int, estimated: int) -> None:
        self._write_event({
            "event": "unit_start",
            "unit": name,
            "byte_size": byte_size,
            "estimated_size": estimated,
        })

    def unit_skipped(self, name: str, estimated: int, budget: int) -> None:
        self._write_event({"event": "unit_skipped", "unit": name, "estimated_size": estimated})
        self._console_print(
            f"      [cyan]=[/cyan] {name} ({estimated}/{budget} tokens) up to date",
            Verbosity.VERBOSE,
        )

    def unit_unprocessable(self, name: str, reason: str) -> None:
        self._write_event({"event": "unit_unprocessable", "unit": name, "reason": reason})
        self._console_print(
            f"      [dim]-[/dim] {name}: {reason}",
            Verbosity.VERBOSE,
        )

    def backup_created(self, name: str, path: Path) -> None:
        self._write_event({"event": "backup_created", "unit": name, "path": str(path)})
        self._console_print(f"        [dim]backed up {path.name}[/dim]", Verbosity.DEBUG)

    def backup_failed(self, name: str, error: str) -> None:
        self._write_event({"event": "backup_failed", "unit": name, "error": error})
        self._console_print(
            f"      [yellow]![/yellow] {name}: could not create backup: {error}",
            Verbosity.DEFAULT,
        )

    def unit_condensed(self, name: str, before: int, after: int) -> None:
        self._write_event({
            "event": "unit_condensed",
            "unit": name,
            "estimated_before": before,
            "estimated_after": after,
        })
        self._console_print(
            f"      [magenta]~[/magenta] {name} condensed {before} -> {after} tokens",
            Verbosity.VERBOSE,
        )

    def unit_recorded(self, name: str, byte_size: int) -> None:
        self._write_event({"event": "unit_recorded", "unit": name, "byte_size": byte_size})
        self._console_print(f"      [green]+[/green] {name}", Verbosity.VERBOSE)

    def unit_failed(self, name: str, stage: str, reason: str) -> None:
        self._write_event({"event": "unit_failed", "unit": name, "stage": stage, "reason": reason})
        self._console_print(
            f"      [red]x[/red] {name} failed while {stage}: {reason}",
            Verbosity.DEFAULT,
        )

    # -- LLM call events --

    def llm_call_start(self, name: str, purpose: str) -> None:
        self._write_event({"event": "llm_call_start", "unit": name, "purpose": purpose})
        self._console_print(f"        [dim]LLM call: {name} ({purpose})[/dim]", Verbosity.DEBUG)

    def llm_call_finish(
        self,
        name: str,
        purpose: str,
        duration: float,
        input_tokens: int = 0,
        output_tokens: int = 0,
        ok: bool = True,
    ) -> None:
        with self._lock:
            unit = self.run_log.get_or_create_unit(name)
            unit.llm_calls += 1
            unit.tokens_used += input_tokens + output_tokens

        self._write_event({
            "event": "llm_call_finish",
            "unit": name,
            "purpose": purpose,
            "ok": ok,
            "duration_seconds": round(duration, 3),
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        })
        self._console_print(
            f"        [dim]  -> {duration:.1f}s, {input_tokens}in/{output_tokens}out tokens[/dim]",
            Verbosity.DEBUG,
        )

    def unit_usage(self, name: str) -> tuple[int, int]:
        """(LLM calls, tokens used) recorded so far for a character."""
        with self._lock:
            unit = self.run_log.units.get(name)
            if unit is None:
                return 0, 0
            return unit.llm_calls, unit.tokens_used

    def close(self) -> None:
        """Close the log file if open."""
        with self._lock:
            if self._log_file is not None:
                self._log_file.close()
                self._log_file = None


def _estimate_cost(total_tokens: int) -> float:
    """Rough cost estimate at DeepSeek chat pricing.

    Averages input and output pricing to about $0.70 per 1M tokens since
    totals are not split by direction.
    """
    return total_tokens * 0.7 / 1_000_000
