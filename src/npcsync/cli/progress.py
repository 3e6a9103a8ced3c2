"""Live progress display for synchronization passes."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock

from rich.console import Console, ConsoleOptions, RenderResult
from rich.text import Text

from npcsync.core.models import UnitState

_ACTIVE_LABELS = {
    UnitState.PENDING: "queued",
    UnitState.CHECKING: "checking",
    UnitState.CONDENSING: "condensing",
    UnitState.REGENERATING: "regenerating",
}


@dataclass
class _UnitView:
    name: str
    state: UnitState = UnitState.PENDING
    start_time: float = 0.0
    elapsed: float = 0.0


class SyncProgress:
    """Thread-safe live progress tracker for a pass.

    Implements Rich's console protocol for rendering with Live.
    Updated from worker threads by the Synchronizer.
    """

    def __init__(self, max_finished_shown: int = 8) -> None:
        self._lock = Lock()
        self._start = time.time()
        self._units: dict[str, _UnitView] = {}
        self._order: list[str] = []
        self._finished: list[str] = []
        self.max_finished_shown = max_finished_shown
        self.max_in_flight = 0

    def unit_start(self, name: str) -> None:
        with self._lock:
            view = self._units.get(name)
            if view is None:
                view = _UnitView(name)
                self._units[name] = view
                self._order.append(name)
            view.state = UnitState.PENDING
            view.start_time = time.time()
            self.max_in_flight = max(self.max_in_flight, self._in_flight())

    def unit_state(self, name: str, state: UnitState) -> None:
        with self._lock:
            if name in self._units:
                self._units[name].state = state

    def unit_finish(self, name: str, state: UnitState, elapsed: float = 0.0) -> None:
        with self._lock:
            view = self._units.setdefault(name, _UnitView(name))
            if name not in self._order:
                self._order.append(name)
            view.state = state
            view.elapsed = elapsed or (time.time() - view.start_time)
            self._finished.append(name)

    def _in_flight(self) -> int:
        return sum(1 for v in self._units.values() if not v.state.terminal)

    def counts(self) -> dict[str, int]:
        with self._lock:
            counts: dict[str, int] = {}
            for view in self._units.values():
                counts[view.state.value] = counts.get(view.state.value, 0) + 1
            return counts

    def __rich_console__(
        self, console: Console, options: ConsoleOptions
    ) -> RenderResult:
        with self._lock:
            now = time.time()
            done = len(self._finished)
            in_flight = self._in_flight()
            header = f"  [bold]Characters[/bold]  {done}/{len(self._order)}"
            if in_flight:
                header += f"  [yellow]⟳ {in_flight} in flight[/yellow]"
            header += f"  [dim]{now - self._start:.1f}s[/dim]"
            yield Text.from_markup(header)

            for name in self._finished[-self.max_finished_shown:]:
                view = self._units[name]
                yield Text.from_markup(_finished_line(view))

            for name in self._order:
                view = self._units[name]
                if view.state.terminal:
                    continue
                label = _ACTIVE_LABELS.get(view.state, view.state.value)
                yield Text.from_markup(
                    f"    [yellow]⟳[/yellow] {_short_name(name)}  "
                    f"[yellow]{label} {now - view.start_time:.1f}s[/yellow]"
                )


def _finished_line(view: _UnitView) -> str:
    short = _short_name(view.name)
    if view.state is UnitState.RECORDED:
        return f"    [green]✓[/green] {short}  [dim]{view.elapsed:.1f}s[/dim]"
    if view.state is UnitState.SKIPPED:
        return f"    [cyan]=[/cyan] {short}  [dim]up to date[/dim]"
    if view.state is UnitState.FAILED:
        return f"    [red]✗[/red] {short}  [red]failed[/red]"
    return f"    [dim]· {short}  no memories[/dim]"


def _short_name(name: str) -> str:
    if len(name) > 35:
        return name[:32] + "..."
    return name
