"""Cassette layer — record and replay generator calls.

In ``record`` mode, calls pass through to the wrapped generator and
successful responses are saved to ``<cassette_dir>/llm.yaml``. In
``replay`` mode, responses are answered from disk and the wrapped
generator is never contacted; a miss is a failed Completion.

Configured via settings: NPCSYNC_CASSETTE_MODE ("record", "replay" or
"off") and NPCSYNC_CASSETTE_DIR.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from npcsync.core.errors import ConfigError, atomic_write
from npcsync.llm.generator import Completion, TextGenerator

logger = logging.getLogger(__name__)

CASSETTE_MODES = ("off", "record", "replay")


def compute_cassette_key(provider: str, model: str, prompt: str) -> str:
    """Deterministic key for a generation request.

    Normalizes line endings and trailing whitespace so cosmetic changes in
    the transcript file do not cause misses.
    """
    payload = {
        "provider": provider,
        "model": model,
        "prompt": prompt.replace("\r\n", "\n").rstrip(),
    }
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(raw.encode()).hexdigest()


@dataclass
class CassetteEntry:
    """A single recorded interaction."""

    key: str
    request: dict = field(default_factory=dict)
    response: dict = field(default_factory=dict)


class CassetteStore:
    """Thread-safe store for cassette entries, backed by a YAML file."""

    def __init__(self, cassette_dir: Path):
        self.cassette_dir = Path(cassette_dir)
        self._entries: dict[str, CassetteEntry] = {}
        self._lock = threading.Lock()
        self._load()

    @property
    def path(self) -> Path:
        return self.cassette_dir / "llm.yaml"

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or []
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Ignoring unreadable cassette %s: %s", self.path, exc)
            return
        if not isinstance(data, list):
            return
        for item in data:
            if not isinstance(item, dict):
                continue
            key = item.get("key", "")
            if key:
                self._entries[key] = CassetteEntry(
                    key=key,
                    request=item.get("request", {}),
                    response=item.get("response", {}),
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> CassetteEntry | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, entry: CassetteEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def save(self) -> None:
        self.cassette_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            data = [
                {"key": e.key, "request": e.request, "response": e.response}
                for e in self._entries.values()
            ]
            atomic_write(
                self.path,
                yaml.dump(data, default_flow_style=False, allow_unicode=True, width=120),
            )


class CassetteGenerator:
    """Wraps a TextGenerator, intercepting complete() for record/replay."""

    def __init__(self, inner: TextGenerator, mode: str, store: CassetteStore):
        if mode not in ("record", "replay"):
            raise ValueError(f"Unsupported cassette mode: {mode!r}")
        self.inner = inner
        self.mode = mode
        self.store = store
        self.provider = getattr(inner, "provider", "unknown")
        self.model = getattr(inner, "model", "unknown")

    def complete(self, prompt: str) -> Completion:
        key = compute_cassette_key(self.provider, self.model, prompt)

        entry = self.store.get(key)
        if entry is not None:
            resp = entry.response
            return Completion.success(
                resp.get("text", ""),
                input_tokens=resp.get("input_tokens", 0),
                output_tokens=resp.get("output_tokens", 0),
            )

        if self.mode == "replay":
            return Completion.failure(
                f"cassette miss for key {key[:12]}... (prompt: {prompt[:80]!r}); "
                "run with NPCSYNC_CASSETTE_MODE=record to capture this call"
            )

        completion = self.inner.complete(prompt)
        if completion.ok:
            self.store.put(CassetteEntry(
                key=key,
                request={
                    "provider": self.provider,
                    "model": self.model,
                    "prompt_preview": prompt[:200],
                },
                response={
                    "text": completion.text,
                    "input_tokens": completion.input_tokens,
                    "output_tokens": completion.output_tokens,
                },
            ))
            self.store.save()
        return completion


def maybe_wrap_generator(
    generator: TextGenerator,
    mode: str,
    cassette_dir: Path | None,
) -> TextGenerator:
    """Wrap a generator with cassette support when mode is not "off"."""
    mode = (mode or "off").lower()
    if mode == "off":
        return generator
    if mode not in CASSETTE_MODES:
        raise ConfigError(f"Unknown cassette mode {mode!r}; expected one of {', '.join(CASSETTE_MODES)}")
    if cassette_dir is None:
        raise ConfigError(f"NPCSYNC_CASSETTE_MODE={mode} requires NPCSYNC_CASSETTE_DIR to be set")
    return CassetteGenerator(generator, mode, CassetteStore(cassette_dir))
