"""Text-generator interface consumed by the sync stages.

Generators never raise for a failed call: they return a ``Completion``
that is either a success carrying text or a failure carrying a reason.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from npcsync.llm.client import LLMClient

if TYPE_CHECKING:
    from npcsync.core.logging import SyncLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    """Typed result of one generation call."""

    text: str = ""
    error: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text.strip())

    @property
    def reason(self) -> str:
        if self.error is not None:
            return self.error
        if not self.text.strip():
            return "empty response"
        return ""

    @classmethod
    def success(cls, text: str, input_tokens: int = 0, output_tokens: int = 0) -> Completion:
        return cls(text=text, input_tokens=input_tokens, output_tokens=output_tokens)

    @classmethod
    def failure(cls, reason: str) -> Completion:
        return cls(error=reason)


class TextGenerator(Protocol):
    """Anything that turns a prompt into a Completion."""

    def complete(self, prompt: str) -> Completion: ...


class LLMGenerator:
    """TextGenerator backed by an LLMClient."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    @property
    def provider(self) -> str:
        return self.client.config.provider

    @property
    def model(self) -> str:
        return self.client.config.model

    def complete(self, prompt: str) -> Completion:
        try:
            response = self.client.complete(prompt)
        except (RuntimeError, ValueError) as exc:
            logger.debug("Generation failed: %s", exc)
            return Completion.failure(str(exc))

        if not response.content.strip():
            return Completion.failure("empty response")
        return Completion.success(
            response.content,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )


def tracked_complete(
    generator: TextGenerator,
    prompt: str,
    character: str,
    purpose: str,
    sync_logger: SyncLogger | None = None,
) -> Completion:
    """Call the generator, reporting timing and token usage to the logger."""
    if sync_logger is not None:
        sync_logger.llm_call_start(character, purpose)
    start = time.time()
    completion = generator.complete(prompt)
    if sync_logger is not None:
        sync_logger.llm_call_finish(
            character,
            purpose,
            time.time() - start,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            ok=completion.ok,
        )
    return completion
