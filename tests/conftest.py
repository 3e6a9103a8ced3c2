"""Shared test fixtures for npcsync."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from npcsync.config import reset_settings
from npcsync.llm.generator import Completion

ENV_VARS = (
    "NPCSYNC_DATA_DIR",
    "NPCSYNC_LOG_DIR",
    "NPCSYNC_CONCURRENCY",
    "NPCSYNC_CASSETTE_MODE",
    "NPCSYNC_CASSETTE_DIR",
    "NPCSYNC_LLM_PROVIDER",
    "NPCSYNC_LLM_MODEL",
    "NPCSYNC_LLM_BASE_URL",
    "DEEPSEEK_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep host environment variables and cached settings out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def prompt_purpose(prompt: str) -> str:
    """Which stage a prompt belongs to: condense, profile or biography."""
    if "into a shorter summary that keeps every fact" in prompt:
        return "condense"
    if "biography from the memories below" in prompt:
        return "biography"
    if "write a character profile" in prompt:
        return "profile"
    return "unknown"


DEFAULT_RESPONSES = {
    "condense": "##These are memories:##\nCondensed memories.",
    "profile": "Character Name: test\nAge: UNKNOWN",
    "biography": "A quiet wanderer who keeps to the roads.",
}


class ScriptedGenerator:
    """Deterministic TextGenerator for tests.

    Responses are picked by prompt purpose. ``fail`` maps a purpose to a
    failure reason; ``fail_if`` fails any prompt containing one of the
    given substrings. Tracks calls and the peak number of concurrent calls.
    """

    provider = "scripted"
    model = "scripted-1"

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        fail: dict[str, str] | None = None,
        fail_if: tuple[str, ...] = (),
        delay: float = 0.0,
    ):
        self.responses = {**DEFAULT_RESPONSES, **(responses or {})}
        self.fail = fail or {}
        self.fail_if = fail_if
        self.delay = delay
        self.prompts: list[str] = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def calls(self) -> list[str]:
        """Purposes of every call, in call order."""
        return [prompt_purpose(p) for p in self.prompts]

    def prompts_for(self, purpose: str) -> list[str]:
        return [p for p in self.prompts if prompt_purpose(p) == purpose]

    def complete(self, prompt: str) -> Completion:
        with self._lock:
            self.prompts.append(prompt)
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            purpose = prompt_purpose(prompt)
            if purpose in self.fail:
                return Completion.failure(self.fail[purpose])
            if any(marker in prompt for marker in self.fail_if):
                return Completion.failure("scripted failure")
            return Completion.success(self.responses.get(purpose, ""), input_tokens=10, output_tokens=5)
        finally:
            with self._lock:
                self._in_flight -= 1


class MantellaDir:
    """Builds a Mantella data folder under a temp directory."""

    def __init__(self, root: Path, current_character: str = "default"):
        self.root = root
        self.current_character = current_character
        self.conversations_dir = root / "conversations" / current_character
        self.overrides_dir = root / "character_overrides"
        self.conversations_dir.mkdir(parents=True)
        self.overrides_dir.mkdir()

    def add_character(
        self,
        name: str,
        transcript: str | None = "",
        suffix: str = " - 000A11",
    ) -> Path:
        """Create a character folder; ``transcript=None`` leaves it without a memory file."""
        directory = self.conversations_dir / f"{name}{suffix}"
        directory.mkdir()
        if transcript is not None:
            (directory / f"{name}_summary_1.txt").write_text(transcript, encoding="utf-8")
        return directory

    def directory(self, name: str) -> Path:
        return next(p for p in self.conversations_dir.iterdir() if p.name.startswith(name))

    def transcript_path(self, name: str) -> Path:
        return self.directory(name) / f"{name}_summary_1.txt"

    def fingerprint_path(self, name: str) -> Path:
        return self.directory(name) / "lastUpdated.json"

    def record_path(self, name: str) -> Path:
        return self.overrides_dir / f"{name}.json"

    def write_fingerprint(self, name: str, byte_size: int) -> None:
        self.fingerprint_path(name).write_text(
            json.dumps({"byteSize": byte_size, "lastUpdated": "2026-01-01T00:00:00+00:00"}),
            encoding="utf-8",
        )

    def write_record(self, name: str, bio: str) -> Path:
        path = self.record_path(name)
        path.write_text(json.dumps({"name": name, "bio": bio}, indent=2), encoding="utf-8")
        return path

    def write_config(self, **overrides) -> Path:
        data = {
            "apiKey": "sk-test-0000000000",
            "maxTokens": 4500,
            "currentCharacter": self.current_character,
            "playerName": "Dragonborn",
        }
        data.update(overrides)
        path = self.root / "config.json"
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path


@pytest.fixture
def generator():
    """A scripted generator with default responses."""
    return ScriptedGenerator()


@pytest.fixture
def make_generator():
    """Factory for scripted generators with custom responses or failures."""
    return ScriptedGenerator


@pytest.fixture
def mantella(tmp_path):
    """Empty Mantella data folder with conversations/default and character_overrides."""
    return MantellaDir(tmp_path / "Skyrim")
